import argparse
import logging
import pathlib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional, Sequence

import numpy as np
import pandas as pd
from progressbar import progressbar
from pydantic import BaseModel, Field, ValidationError, model_validator

from config import (
    ASSETS_PATH,
    BATCH_SIZE,
    CHARACTERS,
    COLLECTION_CONFIG,
    DEFAULT_SEED,
    IMAGE_SIZE,
    OUTPUT_PATH,
    PREVIEW_SIZE,
    RARITIES,
    THUMBNAIL_SIZE,
)
from image import (
    RenderError,
    generate_preview,
    generate_single_image,
    generate_thumbnail,
)
from metadata import (
    BASE_IMAGE_URL,
    build_metadata_frame,
    generate_json_metadata,
    save_collection,
    save_metadata_table,
)
from rng import SeededRandom
from selection import SelectedComposition, UniqueSelection, select_unique
from traits import TraitCatalog, load_trait_catalog, print_trait_summary

logger = logging.getLogger(__name__)


class Token(NamedTuple):
    token_id: int
    selection: SelectedComposition


def split_evenly(total: int, characters: Sequence[str]) -> Dict[str, int]:
    """Split a count across characters, the first ones taking the remainder."""
    share, remainder = divmod(total, len(characters))
    return {
        character: share + (1 if i < remainder else 0)
        for i, character in enumerate(characters)
    }


class GenerationJob(BaseModel):
    """Input of one generation run, validated before any work starts."""

    seed: int = Field(default=DEFAULT_SEED, ge=0, le=0xFFFFFFFF)

    per_character_count: Dict[str, Dict[str, int]] = Field(
        description="rarity -> character -> number of NFTs"
    )

    per_character_inheritance_count: Dict[str, int] = Field(
        default_factory=dict,
        description="character -> common NFTs inheriting legendary traits",
    )

    start_token_id: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def check_counts(self) -> "GenerationJob":
        if not self.per_character_count:
            raise ValueError("No rarity tier requested")
        for rarity, counts in self.per_character_count.items():
            if rarity not in RARITIES:
                raise ValueError(f"Unknown rarity: {rarity}")
            if not counts:
                raise ValueError(f"No characters requested for {rarity}")
            for character, count in counts.items():
                if character not in CHARACTERS:
                    raise ValueError(f"Unknown character: {character}")
                if count <= 0:
                    raise ValueError(f"Count must be positive for {rarity} {character}")

        common = self.per_character_count.get("common", {})
        for character, count in self.per_character_inheritance_count.items():
            if count < 0:
                raise ValueError(f"Negative inheritance count for {character}")
            if count > common.get(character, 0):
                raise ValueError(
                    f"Inheritance count for {character} exceeds its common count"
                )
        return self

    @property
    def total(self) -> int:
        return sum(sum(counts.values()) for counts in self.per_character_count.values())

    @classmethod
    def from_collection_config(
        cls,
        seed: int = DEFAULT_SEED,
        start_token_id: int = 1,
        legendary_only: bool = False,
        characters: Sequence[str] = CHARACTERS,
    ) -> "GenerationJob":
        """Compute per-character quotas from COLLECTION_CONFIG."""
        per_character_count = {}
        inheritance = {}
        for rarity in RARITIES:
            if legendary_only and rarity != "legendary":
                continue
            counts = split_evenly(COLLECTION_CONFIG[rarity]["count"], characters)
            per_character_count[rarity] = {c: n for c, n in counts.items() if n > 0}

        if "common" in per_character_count:
            common = COLLECTION_CONFIG["common"]
            percentage = common.get("legendary_inherit_percentage", 0)
            inherit_total = int(common["count"] * percentage / 100)
            inheritance = split_evenly(inherit_total, characters)

        return cls(
            seed=seed,
            per_character_count=per_character_count,
            per_character_inheritance_count=inheritance,
            start_token_id=start_token_id,
        )


def group_seed(seed: int, rarity: str, character: str) -> int:
    """Base seed of one (rarity, character) group.

    Attempt k of a group is seeded with ``group_seed + k``, so a large group
    runs into the next character's seed range. Fingerprints start with the
    character and all groups share one seen set, so the overlap never
    produces duplicates.
    """
    index = CHARACTERS.index(character)
    if rarity == "legendary":
        return seed + index * 1000
    return seed + 100000 + index * 10000


@dataclass
class PopulationPlan:
    tokens: List[Token] = field(default_factory=list)
    groups: List[UniqueSelection] = field(default_factory=list)

    @property
    def shortfall(self) -> int:
        return sum(group.shortfall for group in self.groups)


def plan_population(catalog: TraitCatalog, job: GenerationJob) -> PopulationPlan:
    """Fill every (rarity, character) quota, then shuffle and number the tokens.

    Token ids are assigned after the shuffle so that they carry no
    information about rarity, character or generation order.
    """
    plan = PopulationPlan()
    seen = set()
    selections = []

    for rarity in RARITIES:
        for character, count in job.per_character_count.get(rarity, {}).items():
            inherit_count = 0
            if rarity == "common":
                inherit_count = job.per_character_inheritance_count.get(character, 0)

            logger.info("Generating %d %s %ss...", count, rarity, character)
            group = select_unique(
                catalog,
                count,
                character,
                rarity,
                group_seed(job.seed, rarity, character),
                inherit_count=inherit_count,
                seen=seen,
            )
            logger.info(
                "  Generated: %d/%d, legendary inheritance: %d/%d",
                len(group.selections),
                count,
                group.inherited,
                inherit_count,
            )
            plan.groups.append(group)
            selections.extend(group.selections)

    shuffled = SeededRandom(job.seed).shuffle(selections)
    plan.tokens = [
        Token(job.start_token_id + i, selection) for i, selection in enumerate(shuffled)
    ]
    return plan


def render_token(
    catalog: TraitCatalog,
    token: Token,
    images_dir: pathlib.Path,
    size: int = IMAGE_SIZE,
    thumbnail_size: Optional[int] = None,
) -> pathlib.Path:
    image_path = images_dir / f"{token.token_id}.png"
    generate_single_image(catalog, token.selection, image_path, size)
    if thumbnail_size:
        generate_thumbnail(image_path, thumbnail_size)
    return image_path


def render_population(
    catalog: TraitCatalog,
    tokens: Sequence[Token],
    images_dir: pathlib.Path,
    batch_size: int = BATCH_SIZE,
    size: int = IMAGE_SIZE,
    thumbnail_size: Optional[int] = None,
) -> List[int]:
    """Render tokens concurrently in fixed-size batches.

    A failing token is logged and skipped; the rest of the batch goes on.
    With ``thumbnail_size`` set, a thumbnail is written next to each image.

    Returns:
        Ids of the tokens that could not be rendered
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    images_dir.mkdir(parents=True, exist_ok=True)

    failed = []
    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for start in progressbar(range(0, len(tokens), batch_size)):
            batch = tokens[start : start + batch_size]
            futures = {
                token: executor.submit(
                    render_token, catalog, token, images_dir, size, thumbnail_size
                )
                for token in batch
            }
            for token, future in futures.items():
                try:
                    future.result()
                except RenderError as e:
                    logger.error("Failed to render token %d: %s", token.token_id, e)
                    failed.append(token.token_id)
                except Exception:
                    logger.exception("Failed to render token %d", token.token_id)
                    failed.append(token.token_id)

    return failed


def token_rarity_correlation(metadata_df: pd.DataFrame) -> float:
    """Pearson correlation between token id and being legendary.

    Close to zero when the shuffle leaves no rarity signal in the numbering.
    """
    token_ids = metadata_df.index.to_numpy(dtype=float)
    is_legendary = (metadata_df["rarity"] == "legendary").to_numpy(dtype=float)
    if len(token_ids) < 2 or is_legendary.min() == is_legendary.max():
        return 0.0
    return float(np.corrcoef(token_ids, is_legendary)[0, 1])


def print_distribution(metadata_df: pd.DataFrame) -> None:
    """Print rarity and character counts of a shuffled population."""
    total = len(metadata_df)
    print("\nDistribution after shuffle:")
    for rarity, count in metadata_df["rarity"].value_counts().items():
        print(f"  {rarity.title()}: {count} ({count / total * 100:.2f}%)")
    by_character = pd.crosstab(metadata_df["character"], metadata_df["rarity"])
    print(by_character.to_string())
    correlation = token_rarity_correlation(metadata_df)
    print(f"  Token id / rarity correlation: {correlation:.4f}")


def generate_collection(
    job: GenerationJob,
    edition: str,
    assets_path: pathlib.Path = ASSETS_PATH,
    output_path: pathlib.Path = OUTPUT_PATH,
    base_image_url: str = BASE_IMAGE_URL,
    skip_images: bool = False,
    batch_size: int = BATCH_SIZE,
    size: int = IMAGE_SIZE,
    thumbnails: bool = False,
    preview: bool = False,
) -> pd.DataFrame:
    """Generate images and metadata for a whole job.

    Returns:
        DataFrame with trait identifiers for each generated NFT
    """
    print("Loading trait catalog...")
    catalog = load_trait_catalog(assets_path)
    print_trait_summary(catalog)

    plan = plan_population(catalog, job)
    if plan.shortfall:
        print(f"\n⚠️  {plan.shortfall} NFTs could not be generated uniquely")

    metadata_df = build_metadata_frame(plan.tokens)
    print(f"\nTotal NFTs: {len(metadata_df)}")
    if metadata_df.empty:
        return metadata_df
    print_distribution(metadata_df)

    edition_path = output_path / f"edition_{edition}"
    edition_path.mkdir(parents=True, exist_ok=True)

    if preview:
        preview_path = edition_path / "preview.png"
        preview_path.write_bytes(
            generate_preview(catalog, plan.tokens[0].selection, PREVIEW_SIZE)
        )
        print(f"Preview of token {plan.tokens[0].token_id} saved to {preview_path}")

    if not skip_images:
        print("\nGenerating images...")
        failed = render_population(
            catalog,
            plan.tokens,
            edition_path / "images",
            batch_size,
            size,
            thumbnail_size=THUMBNAIL_SIZE if thumbnails else None,
        )
        if failed:
            print(f"⚠️  {len(failed)} images failed: {failed}")

    print("Saving metadata...")
    save_metadata_table(edition_path, metadata_df)
    generate_json_metadata(edition_path, metadata_df, base_image_url)
    save_collection(edition_path, metadata_df, base_image_url)

    return metadata_df


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate the NFT collection.")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED)
    parser.add_argument("--uri", default=BASE_IMAGE_URL, help="base image URI")
    parser.add_argument("--skip-images", action="store_true")
    parser.add_argument("--batch", type=int, default=BATCH_SIZE, help="render batch size")
    parser.add_argument("--start", type=int, default=1, help="first token id")
    parser.add_argument("--legendary-only", action="store_true")
    parser.add_argument("--edition", default="main", help="output edition name")
    parser.add_argument("--assets", type=pathlib.Path, default=ASSETS_PATH)
    parser.add_argument("--output", type=pathlib.Path, default=OUTPUT_PATH)
    parser.add_argument("--size", type=int, default=IMAGE_SIZE, help="canvas size")
    parser.add_argument("--thumbnails", action="store_true", help="write _thumb.png files")
    parser.add_argument("--preview", action="store_true", help="write preview.png")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main NFT generation workflow."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        job = GenerationJob.from_collection_config(
            seed=args.seed,
            start_token_id=args.start,
            legendary_only=args.legendary_only,
        )
    except ValidationError as e:
        raise SystemExit(f"Invalid generation job:\n{e}") from e
    if args.batch <= 0:
        raise SystemExit("--batch must be positive")

    print(f"Starting generation of {job.total} NFTs (seed {job.seed})...")
    generate_collection(
        job,
        args.edition,
        assets_path=args.assets,
        output_path=args.output,
        base_image_url=args.uri,
        skip_images=args.skip_images,
        batch_size=args.batch,
        size=args.size,
        thumbnails=args.thumbnails,
        preview=args.preview,
    )

    print("✅ Task complete!")


# Run the main function
if __name__ == "__main__":
    main()
