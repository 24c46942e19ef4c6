"""Spell save DC and spell slot accounting."""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from character_vault.core.constants import (
    ABILITY_CODES,
    PACT_SLOT_TABLE,
    SPELL_DC_BASE,
    SPELL_LEVELS,
    SPELL_SLOT_TABLE,
    STANDARD_SPELL_SLOT_TABLE,
)
from character_vault.core.logging import get_logger
from character_vault.engine.accessors import get_path, num_at, round_half_up, str_at
from character_vault.engine.context import class_identifier
from character_vault.engine.modifiers import accumulate
from character_vault.engine.results import StatValue
from character_vault.models.enums import ItemType, SpellProgression, StatTarget


if TYPE_CHECKING:
    from collections.abc import Mapping

    from character_vault.engine.context import CharacterContext


logger = get_logger(__name__)


# =============================================================================
# Spellcasting Ability
# =============================================================================


def _progression(item: Mapping[str, Any]) -> SpellProgression:
    value = str_at(item, "system.spellcasting.progression").lower()
    try:
        return SpellProgression(value)
    except ValueError:
        return SpellProgression.NONE


def spellcasting_ability(ctx: CharacterContext) -> str | None:
    """Spellcasting ability code.

    ``attributes.spellcasting`` wins; otherwise the first class (then
    subclass) item declaring ``system.spellcasting.ability``.
    """
    declared = str_at(ctx.system, "attributes.spellcasting").lower()
    if declared in ABILITY_CODES:
        return declared
    for item_type in (ItemType.CLASS, ItemType.SUBCLASS):
        for item in ctx.items_of_type(item_type):
            ability = str_at(item, "system.spellcasting.ability").lower()
            if ability in ABILITY_CODES:
                return ability
    return None


# =============================================================================
# Spell Save DC
# =============================================================================


@dataclass(frozen=True)
class SpellDcInputs:
    """Values every spell DC strategy reads."""

    ability: str | None
    modifier: float
    base_modifier: float
    proficiency: float
    base_proficiency: float
    bonus: float
    bonus_delta: float
    explicit: float | None


def spell_dc_inputs(ctx: CharacterContext) -> SpellDcInputs:
    ability = spellcasting_ability(ctx)
    abilities = ctx.abilities
    score = abilities.scores.get(ability or "")
    bonus = accumulate(
        ctx.evaluate_bonus(get_path(ctx.system, "bonuses.spell.dc"), field="bonuses.spell.dc"),
        ctx.changes_for(StatTarget.SPELL_DC_BONUS),
        ctx.resolver(),
    )
    return SpellDcInputs(
        ability=ability,
        modifier=score.modifier if score else 0.0,
        base_modifier=score.base_modifier if score else 0.0,
        proficiency=abilities.proficiency,
        base_proficiency=abilities.base_proficiency,
        bonus=bonus.value,
        bonus_delta=bonus.delta,
        explicit=num_at(ctx.system, "attributes.spelldc"),
    )


def explicit_dc_strategy(inputs: SpellDcInputs) -> float | None:
    """Snapshot DC re-based by ability, proficiency and bonus effect deltas."""
    if inputs.explicit is None:
        return None
    return (
        inputs.explicit
        + (inputs.proficiency - inputs.base_proficiency)
        + (inputs.modifier - inputs.base_modifier)
        + inputs.bonus_delta
    )


def computed_dc_strategy(inputs: SpellDcInputs) -> float | None:
    """``8 + proficiency + ability modifier + bonus``."""
    return SPELL_DC_BASE + inputs.proficiency + inputs.modifier + inputs.bonus


DcStrategy = Callable[[SpellDcInputs], "float | None"]

DC_STRATEGIES: tuple[tuple[str, DcStrategy], ...] = (
    ("explicit", explicit_dc_strategy),
    ("computed", computed_dc_strategy),
)


@dataclass(frozen=True)
class SpellDcResult(StatValue):
    """Spell save DC plus the ability and strategy behind it."""

    ability: str | None = None
    source: str = "computed"


def spell_save_dc(ctx: CharacterContext) -> SpellDcResult:
    """Compute the spell save DC.

    Direct DC changes (``attributes.spelldc``) apply last, in effect order.

    Args:
        ctx: The character context.

    Returns:
        The rounded spell save DC.
    """
    inputs = spell_dc_inputs(ctx)
    source, raw = "computed", SPELL_DC_BASE + inputs.proficiency + inputs.modifier
    for name, strategy in DC_STRATEGIES:
        result = strategy(inputs)
        if result is not None:
            source, raw = name, result
            break

    final = accumulate(raw, ctx.changes_for(StatTarget.SPELL_DC), ctx.resolver())
    augmented = (
        final.changed
        or inputs.bonus_delta != 0
        or inputs.modifier != inputs.base_modifier
        or inputs.proficiency != inputs.base_proficiency
    )
    logger.debug("Spell DC resolved", character=ctx.name, source=source, value=final.value)
    return SpellDcResult(
        value=round_half_up(final.value),
        augmented=augmented,
        ability=inputs.ability,
        source=source,
    )


# =============================================================================
# Spell Slots
# =============================================================================


def progression_levels(progression: SpellProgression, levels: int) -> int:
    """Full-caster-equivalent levels contributed by one class.

    Example:
        >>> progression_levels(SpellProgression.HALF, 5)
        2
        >>> progression_levels(SpellProgression.ARTIFICER, 5)
        3
    """
    match progression:
        case SpellProgression.FULL:
            return levels
        case SpellProgression.HALF:
            return levels // 2
        case SpellProgression.THIRD:
            return levels // 3
        case SpellProgression.ARTIFICER:
            return math.ceil(levels / 2)
    return 0


@dataclass(frozen=True)
class CasterLevels:
    """Caster-equivalent level for the slot table and total pact levels."""

    caster: int = 0
    pact: int = 0


def caster_levels(ctx: CharacterContext) -> CasterLevels:
    """Sum caster-equivalent and pact levels over class and subclass items.

    A subclass only contributes when its class declares no progression of
    its own, using the levels of the class named by ``classIdentifier``.
    """
    caster = 0
    pact = 0
    casting_classes: set[str] = set()
    for item in ctx.items_of_type(ItemType.CLASS):
        progression = _progression(item)
        if progression is SpellProgression.NONE:
            continue
        levels = max(0, int(num_at(item, "system.levels", 0) or 0))
        casting_classes.add(class_identifier(item))
        if progression is SpellProgression.PACT:
            pact += levels
        else:
            caster += progression_levels(progression, levels)

    for item in ctx.items_of_type(ItemType.SUBCLASS):
        progression = _progression(item)
        parent = str_at(item, "system.classIdentifier").lower()
        if progression is SpellProgression.NONE or not parent or parent in casting_classes:
            continue
        levels = ctx.class_levels.get(parent, 0)
        casting_classes.add(parent)
        if progression is SpellProgression.PACT:
            pact += levels
        else:
            caster += progression_levels(progression, levels)
    return CasterLevels(caster=min(caster, max(SPELL_SLOT_TABLE)), pact=min(pact, max(PACT_SLOT_TABLE)))


@dataclass(frozen=True)
class SpellSlotRow:
    """Available and maximum slots of one spell level."""

    level: int
    available: int
    max: int
    augmented: bool = False
    pact: bool = False


@dataclass(frozen=True)
class SpellSlots:
    """Spell slot rows (empty levels omitted) plus the pact magic row."""

    rows: list[SpellSlotRow] = field(default_factory=list)
    pact: SpellSlotRow | None = None
    caster_level: int = 0
    pact_level: int = 0

    @property
    def empty(self) -> bool:
        return not self.rows and self.pact is None


def _slot_row(
    ctx: CharacterContext,
    *,
    path: str,
    level: int,
    table_max: int,
    target: StatTarget,
    qualifier: str | None,
    pact: bool = False,
) -> SpellSlotRow | None:
    override = num_at(ctx.system, f"{path}.override")
    base = override if override is not None and override >= 0 else float(table_max)
    maximum = accumulate(base, ctx.changes_for(target, qualifier), ctx.resolver())
    max_value = max(0, round_half_up(maximum.value))

    available = num_at(ctx.system, f"{path}.value")
    available_value = max_value if available is None else max(0, round_half_up(available))
    shown_max = max(max_value, available_value)
    if shown_max == 0 and available_value == 0:
        return None
    return SpellSlotRow(
        level=level,
        available=available_value,
        max=shown_max,
        augmented=maximum.changed or base != table_max,
        pact=pact,
    )


def spell_slots(ctx: CharacterContext) -> SpellSlots:
    """Compute spell slot rows for levels 1-9 and pact magic.

    Args:
        ctx: The character context.

    Returns:
        Slot accounting; displayed maxima never fall below availability.
    """
    levels = caster_levels(ctx)
    slot_table = STANDARD_SPELL_SLOT_TABLE if ctx.settings.standard_spell_slots else SPELL_SLOT_TABLE
    table = slot_table.get(levels.caster, {})
    rows = []
    for level in SPELL_LEVELS:
        row = _slot_row(
            ctx,
            path=f"spells.spell{level}",
            level=level,
            table_max=table.get(level, 0),
            target=StatTarget.SPELL_SLOT_OVERRIDE,
            qualifier=str(level),
        )
        if row is not None:
            rows.append(row)

    pact_max, pact_slot_level = PACT_SLOT_TABLE.get(levels.pact, (0, 0))
    declared_level = num_at(ctx.system, "spells.pact.level")
    pact_row = _slot_row(
        ctx,
        path="spells.pact",
        level=int(declared_level) if declared_level else pact_slot_level,
        table_max=pact_max,
        target=StatTarget.PACT_SLOT_OVERRIDE,
        qualifier=None,
        pact=True,
    )
    return SpellSlots(rows=rows, pact=pact_row, caster_level=levels.caster, pact_level=levels.pact)


__all__ = [
    "SpellDcInputs",
    "SpellDcResult",
    "DC_STRATEGIES",
    "SpellSlotRow",
    "SpellSlots",
    "CasterLevels",
    "spellcasting_ability",
    "spell_dc_inputs",
    "explicit_dc_strategy",
    "computed_dc_strategy",
    "spell_save_dc",
    "progression_levels",
    "caster_levels",
    "spell_slots",
]
