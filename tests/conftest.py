"""Shared pytest fixtures: small synthetic asset stores built from tiny PNGs."""

import pathlib
from typing import Dict, List

import pytest
from PIL import Image

from traits import TraitCatalog, load_trait_catalog

# tier -> folder -> identifiers
ASSET_STORE: Dict[str, Dict[str, List[str]]] = {
    "legendary": {
        "background": ["cosmic", "aurora"],
        "clothes": ["golden_robe", "spirit_hoodie"],
        "eyes": ["laser_red_eyes", "eyes_golden"],
        "hand_spirit": ["golden_hands", "lunar_hand"],
        "side_hand": ["hand_flame", "hand_spirit"],
        "hand_accessories_gold": ["golden_axe"],
        "side_hand_accessories_gold": ["golden_sword"],
        "base_spirit": [
            "bear_translucent",
            "illuminate_bear",
            "fox_translucent",
            "illuminate_fox",
            "bunny_translucent",
        ],
    },
    "common": {
        "background": ["blue", "green", "pink"],
        "eyes": ["happy", "sleepy", "wink"],
        "eyeglasses": ["round_glasses", "sunglasses"],
        "mouth": ["smile", "grin"],
        "hand_accessories": ["sword", "balloon"],
        "side_hand_accessories": ["flag", "bag"],
        "necklaces": ["gold_chain", "pearls"],
        "shirt_bear_bunny_fox": ["astronaut", "black_hoodie", "tee"],
        "head_acc_bear_bunny_fox": ["scarf", "cap", "beanie"],
        "base_bear": ["brown", "gray"],
        "hand_bear": ["chocolate_brown", "medium_grey"],
        "side_hand_bear": ["chocolate_brown", "medium_grey"],
        "base_fox": ["fox_orange", "fox_black"],
        "hand_fox": ["peach", "fox_black"],
        "side_hand_fox": ["peach", "fox_black"],
    },
}

# Only a handful of common fox combinations exist here
SPARSE_ASSET_STORE: Dict[str, Dict[str, List[str]]] = {
    "common": {
        "background": ["blue", "green"],
        "base_fox": ["fox_orange"],
        "eyes": ["happy", "sleepy", "wink"],
        "mouth": ["smile"],
    },
}

PALETTE = [
    (255, 0, 0, 255),
    (0, 255, 0, 255),
    (0, 0, 255, 255),
    (255, 255, 0, 128),
    (0, 255, 255, 64),
]


def write_png(path: pathlib.Path, color=(255, 0, 0, 255), size=(4, 4)) -> pathlib.Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGBA", size, color).save(path)
    return path


def build_asset_store(
    root: pathlib.Path, store: Dict[str, Dict[str, List[str]]]
) -> pathlib.Path:
    for tier, folders in store.items():
        for folder, identifiers in folders.items():
            for i, identifier in enumerate(identifiers):
                color = PALETTE[i % len(PALETTE)]
                write_png(root / tier / folder / f"{identifier}.png", color)
    return root


@pytest.fixture(scope="session")
def assets_path(tmp_path_factory) -> pathlib.Path:
    root = build_asset_store(tmp_path_factory.mktemp("assets"), ASSET_STORE)
    # Ignored by the loader
    (root / "common" / "eyes" / "notes.txt").write_text("not an image")
    return root


@pytest.fixture(scope="session")
def catalog(assets_path) -> TraitCatalog:
    return load_trait_catalog(assets_path)


@pytest.fixture(scope="session")
def sparse_catalog(tmp_path_factory) -> TraitCatalog:
    root = build_asset_store(tmp_path_factory.mktemp("sparse"), SPARSE_ASSET_STORE)
    return load_trait_catalog(root)
