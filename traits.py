import logging
import pathlib
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from config import (
    ASSETS_PATH,
    CHARACTER_TRAITS,
    CHARACTERS,
    HAND_ACCESSORY_LAYERS,
    IMAGE_EXTENSIONS,
    LAYER_ORDER,
    LEGENDARY_BASE_FILES,
    LEGENDARY_LAYER_ALIASES,
    OPTIONAL_TRAIT_CHANCE,
    RARITIES,
    SHARED_TRAITS,
    TIER_DIRECTORIES,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraitAsset:
    """One image file of the asset store.

    ``identifier`` is the filename without extension and is the key used for
    lookups, fingerprints and configuration tables.
    """

    layer: str
    name: str
    identifier: str
    rarity: str
    filename: str


LayerTraits = Dict[str, Tuple[TraitAsset, ...]]


@dataclass(frozen=True)
class TraitCatalog:
    """Traits keyed by rarity tier, then shared or per character, then layer."""

    root: pathlib.Path
    shared: Dict[str, LayerTraits] = field(default_factory=dict)
    characters: Dict[str, Dict[str, LayerTraits]] = field(default_factory=dict)

    def get_traits(
        self, character: str, layer: str, rarity: str
    ) -> Tuple[TraitAsset, ...]:
        """Character-specific traits for a layer, falling back to the shared ones."""
        character_traits = self.characters.get(rarity, {}).get(character, {})
        if layer in character_traits:
            return character_traits[layer]
        return self.shared.get(rarity, {}).get(layer, ())


def get_trait_name(filename: str) -> str:
    """Convert ``golden_hands.png`` to ``Golden Hands``."""
    stem = pathlib.Path(filename).stem
    return " ".join(word[:1].upper() + word[1:] for word in stem.split("_"))


def load_traits_from_folder(
    folder: pathlib.Path,
    layer: str,
    rarity: str,
    only: Optional[Iterable[str]] = None,
) -> Tuple[TraitAsset, ...]:
    """Load the image files of one folder, sorted by name.

    A missing or unreadable folder gives an empty tuple.
    """
    try:
        files = sorted(
            path.name
            for path in folder.iterdir()
            if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS
        )
    except OSError:
        logger.warning("Could not load traits from %s", folder)
        return ()

    if only is not None:
        allowed = set(only)
        files = [f for f in files if pathlib.Path(f).stem in allowed]

    return tuple(
        TraitAsset(
            layer=layer,
            name=get_trait_name(filename),
            identifier=pathlib.Path(filename).stem,
            rarity=rarity,
            filename=filename,
        )
        for filename in files
    )


def load_trait_catalog(assets_path: pathlib.Path = ASSETS_PATH) -> TraitCatalog:
    """Scan the asset store once and build the read-only catalog."""
    assets_path = pathlib.Path(assets_path)
    shared = {}
    characters = {}

    for rarity in RARITIES:
        tier_root = assets_path / TIER_DIRECTORIES[rarity]

        shared[rarity] = {
            layer: load_traits_from_folder(tier_root / folder, layer, rarity)
            for layer, folder in SHARED_TRAITS[rarity].items()
        }

        characters[rarity] = {}
        for character in CHARACTERS:
            layers = {}
            for layer, folder in CHARACTER_TRAITS[rarity].get(character, {}).items():
                only = None
                if rarity == "legendary" and layer == "base":
                    only = LEGENDARY_BASE_FILES[character]
                layers[layer] = load_traits_from_folder(
                    tier_root / folder, layer, rarity, only
                )
            characters[rarity][character] = layers

    return TraitCatalog(root=assets_path, shared=shared, characters=characters)


def legendary_layer(layer: str) -> str:
    """Map a common layer name to the legendary layer it inherits from."""
    return LEGENDARY_LAYER_ALIASES.get(layer, layer)


def get_trait_folder(
    catalog: TraitCatalog, character: str, layer: str, rarity: str
) -> pathlib.Path:
    """Resolve the folder holding a layer's assets for one character and tier.

    Raises:
        KeyError: The layer has no folder configured for this tier.
    """
    if rarity == "legendary":
        layer = legendary_layer(layer)

    tier_root = catalog.root / TIER_DIRECTORIES[rarity]
    character_folders = CHARACTER_TRAITS[rarity].get(character, {})
    if layer in character_folders:
        return tier_root / character_folders[layer]
    if layer in SHARED_TRAITS[rarity]:
        return tier_root / SHARED_TRAITS[rarity][layer]
    raise KeyError(f"Unknown layer: {layer} for rarity: {rarity}")


def get_trait_path(
    catalog: TraitCatalog, character: str, layer: str, trait: TraitAsset
) -> pathlib.Path:
    """Path of a trait's image, looked up in the folder of the trait's own tier."""
    return get_trait_folder(catalog, character, layer, trait.rarity) / trait.filename


def get_total_combinations(catalog: TraitCatalog, character: str, rarity: str) -> int:
    """Upper bound on distinct compositions for one character and tier.

    Optional and hand-family layers count one extra choice for "none".
    Cross-layer rules only reduce this number. Legendary inheritance is not
    counted.
    """
    optional = OPTIONAL_TRAIT_CHANCE[rarity]
    total = 1
    for layer in LAYER_ORDER[rarity]:
        choices = len(catalog.get_traits(character, layer, rarity))
        if layer in optional or layer in HAND_ACCESSORY_LAYERS or choices == 0:
            choices += 1
        total = total * choices
    return total


def print_trait_summary(catalog: TraitCatalog) -> None:
    """Print the number of traits per layer."""
    print("\n=== Trait Catalog Summary ===")
    for rarity in RARITIES:
        print(f"\n{rarity.upper()} traits:")
        print("  Shared:")
        for layer, traits in catalog.shared.get(rarity, {}).items():
            print(f"    {layer}: {len(traits)} traits")
        print("  Per character:")
        for character, layers in catalog.characters.get(rarity, {}).items():
            counts = ", ".join(f"{layer}:{len(t)}" for layer, t in layers.items())
            print(f"    {character}: {counts}")
