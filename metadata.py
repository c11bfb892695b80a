import argparse
import json
import pathlib
from typing import Any, Dict, Iterable, List, Tuple

import pandas as pd
from progressbar import progressbar

from config import (
    CHARACTER_DISPLAY_NAMES,
    LAYER_DISPLAY_NAMES,
    LAYER_ORDER,
    LAYER_ORDER_COMMON,
    LAYER_ORDER_LEGENDARY,
    NONE_VALUE,
    OUTPUT_PATH,
)
from selection import SelectedComposition
from traits import get_trait_name

# Configuration - EDIT THESE VALUES BEFORE RUNNING
BASE_IMAGE_URL = "ipfs://<-- Your CID Code-->"
BASE_NAME = "Collectible"
DESCRIPTION = "A {rarity} {character} from the {collection} collection."

# Every layer of both tiers, in compositing order
ALL_LAYERS = list(dict.fromkeys(LAYER_ORDER_COMMON + LAYER_ORDER_LEGENDARY))


def create_base_metadata() -> Dict[str, Any]:
    """Create base metadata template."""
    return {
        "name": BASE_NAME,
        "description": "",
        "image": BASE_IMAGE_URL,
        "attributes": [],
    }


def clean_column_name(name: str) -> str:
    """Convert snake_case to Title Case."""
    return name.replace("_", " ").title()


def build_metadata_frame(
    tokens: Iterable[Tuple[int, SelectedComposition]]
) -> pd.DataFrame:
    """One row per token id, one column per layer holding the trait identifier."""
    records = []
    for token_id, selection in tokens:
        record = {
            "token_id": token_id,
            "character": selection.character,
            "rarity": selection.rarity,
            "legendary_inheritance": selection.has_legendary_inheritance,
        }
        traits = selection.traits
        for layer in ALL_LAYERS:
            trait = traits.get(layer)
            record[layer] = trait.identifier if trait else NONE_VALUE
        records.append(record)

    columns = ["token_id", "character", "rarity", "legendary_inheritance"] + ALL_LAYERS
    return pd.DataFrame.from_records(records, columns=columns).set_index("token_id")


def create_item_metadata(
    token_id: int, row: pd.Series, base_image_url: str = BASE_IMAGE_URL
) -> Dict[str, Any]:
    """Build the public metadata of one token from its metadata row."""
    rarity_name = clean_column_name(row["rarity"])
    character_name = CHARACTER_DISPLAY_NAMES.get(row["character"], row["character"])

    item_metadata = create_base_metadata()
    item_metadata["name"] = f"{BASE_NAME} #{token_id}"
    item_metadata["description"] = DESCRIPTION.format(
        rarity=rarity_name, character=character_name, collection=BASE_NAME
    )
    item_metadata["image"] = f"{base_image_url.rstrip('/')}/{token_id}.png"

    attributes = item_metadata["attributes"]
    attributes.append({"trait_type": "Rarity", "value": rarity_name})
    attributes.append({"trait_type": "Character", "value": character_name})

    # Add traits (skip None values)
    for layer in LAYER_ORDER[row["rarity"]]:
        identifier = row[layer]
        if identifier != NONE_VALUE:
            trait_type = LAYER_DISPLAY_NAMES.get(layer, clean_column_name(layer))
            attributes.append(
                {"trait_type": trait_type, "value": get_trait_name(identifier)}
            )

    return item_metadata


def load_metadata(edition_path: pathlib.Path) -> pd.DataFrame:
    """Load the metadata table written by a generation run."""
    metadata_path = edition_path / "metadata.csv"
    return pd.read_csv(
        metadata_path, index_col="token_id", dtype=str, keep_default_na=False
    )


def save_metadata_table(
    edition_path: pathlib.Path, metadata_df: pd.DataFrame
) -> pathlib.Path:
    """Write metadata.csv, the table later read back by load_metadata."""
    metadata_path = edition_path / "metadata.csv"
    metadata_df.to_csv(metadata_path)
    return metadata_path


def generate_json_metadata(
    edition_path: pathlib.Path,
    metadata_df: pd.DataFrame,
    base_image_url: str = BASE_IMAGE_URL,
) -> pathlib.Path:
    """Generate JSON metadata files for all NFTs."""
    metadata_dir = edition_path / "metadata"
    metadata_dir.mkdir(parents=True, exist_ok=True)

    print(f"Generating JSON metadata for {len(metadata_df)} NFTs...")

    for token_id, row in progressbar(metadata_df.iterrows(), max_value=len(metadata_df)):
        item_metadata = create_item_metadata(token_id, row, base_image_url)

        json_file = metadata_dir / f"{token_id}.json"
        with open(json_file, "w", encoding="utf-8") as f:
            json.dump(item_metadata, f, indent=2, ensure_ascii=False)

    return metadata_dir


def save_collection(
    edition_path: pathlib.Path,
    metadata_df: pd.DataFrame,
    base_image_url: str = BASE_IMAGE_URL,
) -> pathlib.Path:
    """Write collection.json: public metadata plus the internal fields."""
    collection: List[Dict[str, Any]] = []
    for token_id, row in metadata_df.iterrows():
        item = create_item_metadata(token_id, row, base_image_url)
        item["tokenId"] = int(token_id)
        item["character"] = row["character"]
        item["rarity"] = row["rarity"]
        item["traits"] = {
            layer: row[layer]
            for layer in LAYER_ORDER[row["rarity"]]
            if row[layer] != NONE_VALUE
        }
        collection.append(item)

    collection_path = edition_path / "collection.json"
    with open(collection_path, "w", encoding="utf-8") as f:
        json.dump(collection, f, indent=2, ensure_ascii=False)
    return collection_path


def main() -> None:
    """Regenerate JSON metadata files for an existing edition."""
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument("edition", help="edition name to generate metadata for")
    parser.add_argument("--uri", default=BASE_IMAGE_URL, help="base image URI")
    parser.add_argument("--output", type=pathlib.Path, default=OUTPUT_PATH)
    args = parser.parse_args()

    edition_path = args.output / f"edition_{args.edition}"

    metadata_df = load_metadata(edition_path)
    metadata_dir = generate_json_metadata(edition_path, metadata_df, args.uri)
    save_collection(edition_path, metadata_df, args.uri)

    print(f"✅ Metadata generated in {metadata_dir}")


if __name__ == "__main__":
    main()
