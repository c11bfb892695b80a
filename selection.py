import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from config import (
    ACCESSORY_MODE_CHANCE_KEY,
    ACCESSORY_MODES,
    CHARACTERS,
    COLOR_MATCHING_COMMON,
    COMMON_ASTRONAUT,
    COMMON_HOODIES,
    DEFAULT_OPTIONAL_CHANCE,
    HAND_ACCESSORY_LAYERS,
    HEAD_ACC_BLOCKS_EYEGLASSES,
    LAYER_ORDER,
    LEGENDARY_BASE_HAND_PAIRING,
    LEGENDARY_CLOTHES_BLOCKS_HEAD_ACC,
    LEGENDARY_INHERITABLE_TRAITS,
    MAX_ATTEMPTS_MULTIPLIER,
    NONE_VALUE,
    OPTIONAL_TRAIT_CHANCE,
)
from rng import SeededRandom
from traits import TraitAsset, TraitCatalog, legendary_layer

logger = logging.getLogger(__name__)

# Layers blocked by a full-body shirt (hoodie, astronaut suit, legendary clothes)
SHIRT_BLOCKED_LAYERS = ("head_acc", "necklaces")


@dataclass(frozen=True)
class SelectedComposition:
    """One resolved trait per layer (or None), in compositing order."""

    character: str
    rarity: str
    assignments: Tuple[Tuple[str, Optional[TraitAsset]], ...]
    legendary_inherit: bool = False

    @property
    def traits(self) -> Dict[str, Optional[TraitAsset]]:
        return dict(self.assignments)

    @property
    def has_legendary_inheritance(self) -> bool:
        """True when a common composition carries at least one legendary asset."""
        if self.rarity != "common":
            return False
        return any(
            trait is not None and trait.rarity == "legendary"
            for _, trait in self.assignments
        )

    def fingerprint(self) -> str:
        """Canonical uniqueness key: character, rarity, then one id per layer."""
        parts = [self.character, self.rarity]
        traits = self.traits
        for layer in LAYER_ORDER[self.rarity]:
            trait = traits.get(layer)
            parts.append(trait.identifier if trait else NONE_VALUE)
        return "|".join(parts)


@dataclass
class SelectionState:
    """Flags carried across the per-layer walk of one composition."""

    inherited_layers: FrozenSet[str]
    accessory_mode: str
    has_accessory: bool
    base: Optional[str] = None
    legendary_eyes: bool = False
    legendary_clothes: bool = False
    hoodie: bool = False
    astronaut: bool = False

    @property
    def full_body_shirt(self) -> bool:
        return self.legendary_clothes or self.hoodie or self.astronaut


def _roll_inherited_layers(rng: SeededRandom) -> FrozenSet[str]:
    """Pick which legendary layers a common composition inherits (at least one)."""
    inherited = {layer for layer in LEGENDARY_INHERITABLE_TRAITS if rng.next() < 0.5}
    if not inherited:
        index = rng.next_int(0, len(LEGENDARY_INHERITABLE_TRAITS) - 1)
        inherited.add(LEGENDARY_INHERITABLE_TRAITS[index])
    return frozenset(inherited)


def _roll_accessory_mode(rng: SeededRandom, rarity: str) -> Tuple[str, bool]:
    """Pick the single accessory family and whether its accessory shows."""
    roll = rng.next()
    if roll < 0.33:
        mode = "right"
    elif roll < 0.66:
        mode = "left"
    else:
        mode = "no_hand"

    chance = OPTIONAL_TRAIT_CHANCE[rarity].get(
        ACCESSORY_MODE_CHANCE_KEY[mode], DEFAULT_OPTIONAL_CHANCE
    )
    return mode, rng.next() * 100 <= chance


def _candidate_pool(
    catalog: TraitCatalog,
    character: str,
    rarity: str,
    layer: str,
    state: SelectionState,
) -> Tuple[Tuple[TraitAsset, ...], bool]:
    """Return the traits to sample from and whether they are inherited."""
    inherit = rarity == "common" and legendary_layer(layer) in state.inherited_layers
    if inherit:
        return catalog.get_traits(character, legendary_layer(layer), "legendary"), True
    return catalog.get_traits(character, layer, rarity), False


def _is_suppressed(layer: str, state: SelectionState) -> bool:
    if layer == "eyeglasses" and (state.legendary_eyes or state.astronaut):
        return True
    if layer in SHIRT_BLOCKED_LAYERS and state.full_body_shirt:
        return True
    if layer in HAND_ACCESSORY_LAYERS:
        # Hands only show with their accessory
        if not state.has_accessory:
            return True
        return layer not in ACCESSORY_MODES[state.accessory_mode]
    return False


def _paired_identifier(
    character: str, rarity: str, layer: str, state: SelectionState
) -> Optional[str]:
    """Hand identifier matching the selected base, if one is configured."""
    if layer not in ("hand", "side_hand") or state.base is None:
        return None
    if rarity == "legendary":
        pairing = LEGENDARY_BASE_HAND_PAIRING.get(state.base)
    else:
        pairing = COLOR_MATCHING_COMMON.get(character, {}).get(state.base)
    if not pairing:
        return None
    return pairing.get(layer)


def _find(traits: Tuple[TraitAsset, ...], identifier: str) -> Optional[TraitAsset]:
    for trait in traits:
        if trait.identifier == identifier:
            return trait
    return None


def _pick(traits: Tuple[TraitAsset, ...], rng: SeededRandom) -> TraitAsset:
    return traits[rng.next_int(0, len(traits) - 1)]


def _resolve_layer(
    catalog: TraitCatalog,
    character: str,
    rarity: str,
    layer: str,
    rng: SeededRandom,
    state: SelectionState,
    forced_base: Optional[str],
) -> Optional[TraitAsset]:
    """Choose the trait for one layer, or None when it stays empty."""
    traits, inherited = _candidate_pool(catalog, character, rarity, layer, state)
    if not traits or _is_suppressed(layer, state):
        return None

    # Astronaut helmets hide legendary eyes
    if layer == "eyes" and inherited and state.astronaut:
        traits = catalog.get_traits(character, layer, "common")
        if not traits:
            return None

    if layer not in HAND_ACCESSORY_LAYERS and layer in OPTIONAL_TRAIT_CHANCE[rarity]:
        if rng.next() * 100 > OPTIONAL_TRAIT_CHANCE[rarity][layer]:
            return None

    paired = _paired_identifier(character, rarity, layer, state)
    if paired is not None:
        match = _find(traits, paired)
        if match is not None:
            return match

    if layer == "base" and forced_base:
        forced = _find(traits, forced_base)
        if forced is not None:
            return forced
    return _pick(traits, rng)


def _apply_side_effects(
    catalog: TraitCatalog,
    character: str,
    layer: str,
    trait: TraitAsset,
    rng: SeededRandom,
    state: SelectionState,
    selected: Dict[str, Optional[TraitAsset]],
) -> None:
    """Update the walk state after a trait was assigned to a layer."""
    if layer == "base":
        state.base = trait.identifier

    if layer == "eyes" and trait.rarity == "legendary":
        state.legendary_eyes = True

    if legendary_layer(layer) == "clothes":
        if trait.rarity == "legendary" and LEGENDARY_CLOTHES_BLOCKS_HEAD_ACC:
            state.legendary_clothes = True
        elif trait.rarity == "common":
            state.hoodie = trait.identifier in COMMON_HOODIES
            state.astronaut = trait.identifier in COMMON_ASTRONAUT

    # Eyes come before head_acc, so a face covering fixes them up afterwards
    if layer == "head_acc" and trait.identifier in HEAD_ACC_BLOCKS_EYEGLASSES:
        selected["eyeglasses"] = None
        eyes = selected.get("eyes")
        if eyes is not None and eyes.rarity == "legendary":
            common_eyes = catalog.get_traits(character, "eyes", "common")
            if common_eyes:
                selected["eyes"] = _pick(common_eyes, rng)
                state.legendary_eyes = False


def select_traits(
    catalog: TraitCatalog,
    character: str,
    rarity: str,
    rng: SeededRandom,
    forced_base: Optional[str] = None,
    legendary_inherit: bool = False,
) -> SelectedComposition:
    """Resolve one composition honouring every cross-layer rule.

    Args:
        catalog: Loaded trait catalog
        character: One of the configured characters
        rarity: "legendary" or "common"
        rng: Random source, consumed in a fixed order
        forced_base: Base identifier to use if present in the pool
        legendary_inherit: Common only, borrow some layers from the legendary catalog

    Returns:
        The selected composition
    """
    if character not in CHARACTERS:
        raise ValueError(f"Unknown character: {character}")
    if rarity not in LAYER_ORDER:
        raise ValueError(f"Unknown rarity: {rarity}")

    legendary_inherit = legendary_inherit and rarity == "common"
    inherited_layers = frozenset()
    if legendary_inherit:
        inherited_layers = _roll_inherited_layers(rng)
    mode, has_accessory = _roll_accessory_mode(rng, rarity)

    state = SelectionState(
        inherited_layers=inherited_layers,
        accessory_mode=mode,
        has_accessory=has_accessory,
    )
    selected = {}
    for layer in LAYER_ORDER[rarity]:
        trait = _resolve_layer(
            catalog, character, rarity, layer, rng, state, forced_base
        )
        selected[layer] = trait
        if trait is not None:
            _apply_side_effects(catalog, character, layer, trait, rng, state, selected)

    return SelectedComposition(
        character=character,
        rarity=rarity,
        assignments=tuple((layer, selected[layer]) for layer in LAYER_ORDER[rarity]),
        legendary_inherit=legendary_inherit,
    )


def attempt_selection(
    catalog: TraitCatalog,
    character: str,
    rarity: str,
    base_seed: int,
    attempt: int,
    legendary_inherit: bool = False,
) -> SelectedComposition:
    """Selection for one attempt index, seeded with ``base_seed + attempt``."""
    rng = SeededRandom(base_seed + attempt)
    return select_traits(
        catalog, character, rarity, rng, legendary_inherit=legendary_inherit
    )


@dataclass
class UniqueSelection:
    """Accepted compositions of one (character, rarity) group."""

    character: str
    rarity: str
    requested: int
    inherit_requested: int = 0
    selections: List[SelectedComposition] = field(default_factory=list)
    attempts: int = 0

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - len(self.selections))

    @property
    def inherited(self) -> int:
        return sum(1 for s in self.selections if s.has_legendary_inheritance)


def can_inherit(catalog: TraitCatalog, character: str) -> bool:
    """True when some inheritable legendary layer has assets for the character."""
    return any(
        catalog.get_traits(character, layer, "legendary")
        for layer in LEGENDARY_INHERITABLE_TRAITS
    )


def select_unique(
    catalog: TraitCatalog,
    count: int,
    character: str,
    rarity: str,
    base_seed: int,
    inherit_count: int = 0,
    max_attempts: Optional[int] = None,
    seen: Optional[Set[str]] = None,
) -> UniqueSelection:
    """Generate up to ``count`` compositions with distinct fingerprints.

    The first ``inherit_count`` accepted compositions request legendary
    inheritance; an attempt whose inheritance collapsed (every inherited
    layer ended up empty or common) is rejected. Inheritance stops being
    requested when the character has no inheritable legendary assets or
    after ``inherit_count * MAX_ATTEMPTS_MULTIPLIER`` inheritance attempts;
    the remaining quota is filled with plain compositions. Stops after
    ``max_attempts`` attempts and reports the shortfall instead of raising.
    """
    if inherit_count and rarity != "common":
        raise ValueError("Legendary inheritance only applies to common NFTs")
    if max_attempts is None:
        max_attempts = count * MAX_ATTEMPTS_MULTIPLIER
    if seen is None:
        seen = set()
    if inherit_count and not can_inherit(catalog, character):
        logger.warning("No inheritable legendary traits for %s", character)
        inherit_budget = 0
    else:
        inherit_budget = inherit_count * MAX_ATTEMPTS_MULTIPLIER

    result = UniqueSelection(
        character=character,
        rarity=rarity,
        requested=count,
        inherit_requested=inherit_count,
    )
    inherited = 0
    inherit_attempts = 0
    while len(result.selections) < count and result.attempts < max_attempts:
        inherit = inherited < inherit_count and inherit_attempts < inherit_budget
        selection = attempt_selection(
            catalog, character, rarity, base_seed, result.attempts, inherit
        )
        result.attempts += 1
        if inherit:
            inherit_attempts += 1

        if inherit and not selection.has_legendary_inheritance:
            continue
        dna = selection.fingerprint()
        if dna in seen:
            continue

        seen.add(dna)
        result.selections.append(selection)
        if inherit:
            inherited += 1

    if result.shortfall:
        logger.warning(
            "Could only generate %d/%d unique %s NFTs for %s",
            len(result.selections),
            count,
            rarity,
            character,
        )
    if inherited < inherit_count:
        logger.warning(
            "Only %d/%d %s NFTs inherit legendary traits",
            inherited,
            inherit_count,
            character,
        )
    return result
