import json

import pytest
from PIL import Image
from pydantic import ValidationError

from config import CHARACTERS, PREVIEW_SIZE
import nft
from nft import (
    GenerationJob,
    Token,
    generate_collection,
    group_seed,
    parse_args,
    plan_population,
    render_population,
    split_evenly,
    token_rarity_correlation,
)
from metadata import build_metadata_frame
from rng import SeededRandom
from selection import SelectedComposition, select_traits
from traits import TraitAsset


@pytest.fixture
def small_job():
    return GenerationJob(
        seed=2024,
        per_character_count={
            "legendary": {"bear": 3, "fox": 3},
            "common": {"bear": 10, "fox": 10},
        },
        per_character_inheritance_count={"bear": 2},
        start_token_id=100,
    )


def test_split_evenly_gives_remainder_to_first():
    assert split_evenly(5735, CHARACTERS) == {
        "bear": 1434,
        "bunny": 1434,
        "fox": 1434,
        "chogstar": 1433,
    }
    assert split_evenly(57, CHARACTERS) == {
        "bear": 15,
        "bunny": 14,
        "fox": 14,
        "chogstar": 14,
    }


def test_job_from_collection_config():
    job = GenerationJob.from_collection_config(seed=7, start_token_id=1)
    assert job.per_character_count["legendary"] == {c: 60 for c in CHARACTERS}
    assert sum(job.per_character_count["common"].values()) == 5735
    assert sum(job.per_character_inheritance_count.values()) == 57
    assert job.total == 5975


def test_legendary_only_job():
    job = GenerationJob.from_collection_config(legendary_only=True)
    assert list(job.per_character_count) == ["legendary"]
    assert job.per_character_inheritance_count == {}
    assert job.total == 240


@pytest.mark.parametrize(
    "kwargs",
    [
        {"per_character_count": {}},
        {"per_character_count": {"common": {}}},
        {"per_character_count": {"common": {"bear": 0}}},
        {"per_character_count": {"common": {"bear": -3}}},
        {"per_character_count": {"common": {"wolf": 3}}},
        {"per_character_count": {"mythic": {"bear": 3}}},
        {
            "per_character_count": {"common": {"bear": 3}},
            "per_character_inheritance_count": {"bear": 4},
        },
        {
            "per_character_count": {"legendary": {"bear": 3}},
            "per_character_inheritance_count": {"bear": 1},
        },
        {"per_character_count": {"common": {"bear": 3}}, "seed": -1},
        {"per_character_count": {"common": {"bear": 3}}, "seed": 2**32},
    ],
)
def test_invalid_job_rejected(kwargs):
    with pytest.raises(ValidationError):
        GenerationJob(**kwargs)


def test_group_seeds_are_distinct():
    seeds = {group_seed(42, r, c) for r in ("legendary", "common") for c in CHARACTERS}
    assert len(seeds) == 2 * len(CHARACTERS)
    assert group_seed(42, "legendary", "fox") == 42 + 2000
    assert group_seed(42, "common", "fox") == 42 + 100000 + 20000


def test_overlapping_group_seeds_stay_unique(catalog):
    # 25 legendary bears use 1250 attempt seeds, past the fox group seed
    job = GenerationJob(
        seed=3, per_character_count={"legendary": {"bear": 25, "fox": 25}}
    )
    plan = plan_population(catalog, job)
    fingerprints = [t.selection.fingerprint() for t in plan.tokens]
    assert len(set(fingerprints)) == len(fingerprints)
    assert {t.selection.character for t in plan.tokens} == {"bear", "fox"}


def test_plan_population(catalog, small_job):
    plan = plan_population(catalog, small_job)
    assert plan.shortfall == 0
    assert [t.token_id for t in plan.tokens] == list(range(100, 126))

    fingerprints = [t.selection.fingerprint() for t in plan.tokens]
    assert len(set(fingerprints)) == len(fingerprints)

    counts = {}
    for token in plan.tokens:
        key = (token.selection.rarity, token.selection.character)
        counts[key] = counts.get(key, 0) + 1
    assert counts == {
        ("legendary", "bear"): 3,
        ("legendary", "fox"): 3,
        ("common", "bear"): 10,
        ("common", "fox"): 10,
    }
    inherited = [t for t in plan.tokens if t.selection.has_legendary_inheritance]
    assert len(inherited) == 2
    assert all(t.selection.character == "bear" for t in inherited)


def test_plan_population_is_reproducible(catalog, small_job):
    a = plan_population(catalog, small_job)
    b = plan_population(catalog, small_job)
    assert a.tokens == b.tokens


def test_plan_population_shuffles(catalog, small_job):
    plan = plan_population(catalog, small_job)
    rarities = [t.selection.rarity for t in plan.tokens]
    # Generation order is all legendary first
    assert rarities != sorted(rarities, key=lambda r: r != "legendary")


def test_token_ids_carry_no_rarity_signal(catalog):
    positions = []
    for seed in range(30):
        job = GenerationJob(
            seed=seed,
            per_character_count={
                "legendary": {"bear": 3, "fox": 3},
                "common": {"bear": 10, "fox": 10},
            },
        )
        tokens = plan_population(catalog, job).tokens
        last = len(tokens) - 1
        positions.extend(
            (t.token_id - 1) / last
            for t in tokens
            if t.selection.rarity == "legendary"
        )
    assert len(positions) == 30 * 6
    assert abs(sum(positions) / len(positions) - 0.5) < 0.1


def test_plan_reports_shortfall(sparse_catalog):
    job = GenerationJob(per_character_count={"common": {"fox": 50}})
    plan = plan_population(sparse_catalog, job)
    assert len(plan.tokens) <= 6
    assert plan.shortfall >= 44


def test_render_population_isolates_failures(catalog, tmp_path):
    good = [
        Token(i, select_traits(catalog, "bear", "common", SeededRandom(i)))
        for i in range(1, 6)
    ]
    ghost = TraitAsset("eyes", "Ghost", "ghost", "common", "ghost.png")
    bad = Token(99, SelectedComposition("bear", "common", (("eyes", ghost),)))
    tokens = good[:2] + [bad] + good[2:]

    images_dir = tmp_path / "images"
    failed = render_population(catalog, tokens, images_dir, batch_size=2, size=8)

    assert failed == [99]
    for token in good:
        assert (images_dir / f"{token.token_id}.png").is_file()
    assert not (images_dir / "99.png").exists()


def test_render_population_isolates_unexpected_errors(catalog, tmp_path, monkeypatch):
    render = nft.generate_single_image

    def flaky_render(catalog, selection, output_filename, size):
        if output_filename.stem == "3":
            raise ValueError("malformed asset")
        return render(catalog, selection, output_filename, size)

    monkeypatch.setattr(nft, "generate_single_image", flaky_render)
    tokens = [
        Token(i, select_traits(catalog, "fox", "common", SeededRandom(i)))
        for i in range(1, 5)
    ]
    failed = render_population(catalog, tokens, tmp_path, batch_size=2, size=8)

    assert failed == [3]
    assert sorted(p.name for p in tmp_path.glob("*.png")) == ["1.png", "2.png", "4.png"]


def test_render_population_writes_thumbnails(catalog, tmp_path):
    tokens = [
        Token(i, select_traits(catalog, "bear", "common", SeededRandom(i)))
        for i in range(1, 4)
    ]
    failed = render_population(
        catalog, tokens, tmp_path, batch_size=2, size=16, thumbnail_size=4
    )
    assert failed == []
    for token in tokens:
        with Image.open(tmp_path / f"{token.token_id}_thumb.png") as img:
            assert img.size == (4, 4)


def test_render_population_rejects_bad_batch_size(catalog, tmp_path):
    with pytest.raises(ValueError):
        render_population(catalog, [], tmp_path, batch_size=0)


def test_token_rarity_correlation(catalog, small_job):
    plan = plan_population(catalog, small_job)
    metadata_df = build_metadata_frame(plan.tokens)
    assert -1.0 <= token_rarity_correlation(metadata_df) <= 1.0

    common_only = metadata_df[metadata_df["rarity"] == "common"]
    assert token_rarity_correlation(common_only) == 0.0


def test_generate_collection(catalog, assets_path, tmp_path, small_job):
    metadata_df = generate_collection(
        small_job,
        "test",
        assets_path=assets_path,
        output_path=tmp_path,
        base_image_url="ipfs://CID",
        batch_size=4,
        size=8,
    )
    edition = tmp_path / "edition_test"
    assert len(metadata_df) == 26
    assert (edition / "metadata.csv").is_file()
    assert (edition / "collection.json").is_file()
    assert len(list((edition / "images").glob("*.png"))) == 26

    with open(edition / "metadata" / "100.json", encoding="utf-8") as f:
        item = json.load(f)
    assert item["name"].endswith("#100")
    assert item["image"] == "ipfs://CID/100.png"


def test_generate_collection_skip_images(assets_path, tmp_path, small_job):
    generate_collection(
        small_job, "meta", assets_path=assets_path, output_path=tmp_path, skip_images=True
    )
    assert not (tmp_path / "edition_meta" / "images").exists()
    assert len(list((tmp_path / "edition_meta" / "metadata").glob("*.json"))) == 26


def test_generate_collection_preview_and_thumbnails(assets_path, tmp_path, small_job):
    generate_collection(
        small_job,
        "extras",
        assets_path=assets_path,
        output_path=tmp_path,
        size=8,
        thumbnails=True,
        preview=True,
    )
    edition = tmp_path / "edition_extras"
    with Image.open(edition / "preview.png") as img:
        assert img.size == (PREVIEW_SIZE, PREVIEW_SIZE)
    assert len(list((edition / "images").glob("*_thumb.png"))) == 26


def test_cli_flags():
    args = parse_args(["--thumbnails", "--preview", "--seed", "9"])
    assert args.thumbnails and args.preview
    assert args.seed == 9
