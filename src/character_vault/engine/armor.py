"""Armour class calculation.

The calculation is an ordered chain of strategies; the first one that
produces a value wins:

1. an explicit formula (custom formula, effect-supplied formula, or a
   preset such as mage armour);
2. a flat armour class set by an effect;
3. a direct armour-class value set by an effect;
4. an explicit numeric value in the snapshot;
5. the default: equipped armour + shields + capped DEX modifier.

Every strategy adds the aggregated AC bonus (explicitly, or implicitly for
formulas that do not reference it), and the result is clamped to the AC
minimum and rounded.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from character_vault.core.constants import (
    AC_CALC_FORMULAS,
    AC_FLAT_CALCS,
    BODY_ARMOR_TYPES,
    SHIELD_ARMOR_TYPE,
    UNARMORED_AC,
)
from character_vault.core.logging import get_logger
from character_vault.engine.accessors import (
    bool_from_loose,
    get_path,
    num_at,
    round_half_up,
    str_at,
)
from character_vault.engine.modifiers import accumulate
from character_vault.engine.results import StatValue
from character_vault.models.enums import ChangeMode, ItemType, StatTarget


if TYPE_CHECKING:
    from character_vault.engine.context import CharacterContext


logger = get_logger(__name__)

_ARMOR_PLUS_DEX = re.compile(r"^\s*@attributes\.ac\.armor\s*\+\s*@abilities\.dex\.mod\s*$")
_ARMOR_TOKEN = re.compile(r"@(?:attributes\.ac\.)?armor\b")
_DEX_TOKEN = re.compile(r"@(?:abilities\.dex\.mod|(?:attributes\.ac\.)?dex)\b")
_SHIELD_TOKEN = re.compile(r"@(?:attributes\.ac\.)?shield\b")
_BONUS_TOKEN = re.compile(r"@(?:attributes\.ac\.)?bonus\b")


# =============================================================================
# Equipment
# =============================================================================


@dataclass(frozen=True)
class ArmorPiece:
    """An equipped armour or shield item."""

    name: str
    armor_type: str
    base: float
    magical_bonus: float = 0.0
    dex_cap: float | None = None

    @property
    def total(self) -> float:
        return self.base + self.magical_bonus

    @property
    def is_shield(self) -> bool:
        return self.armor_type == SHIELD_ARMOR_TYPE


def _armor_piece(item: Mapping[str, Any]) -> ArmorPiece | None:
    if item.get("type") != ItemType.EQUIPMENT.value:
        return None
    if not bool_from_loose(get_path(item, "system.equipped")):
        return None
    armor_type = str_at(item, "system.armor.type") or str_at(item, "system.type.value")
    base = num_at(item, "system.armor.value")
    if base is None or (armor_type not in BODY_ARMOR_TYPES and armor_type != SHIELD_ARMOR_TYPE):
        return None
    dex_cap = num_at(item, "system.armor.dex")
    if dex_cap is None and armor_type == "heavy":
        dex_cap = 0.0
    name = item.get("name")
    return ArmorPiece(
        name=name if isinstance(name, str) else "",
        armor_type=armor_type,
        base=base,
        magical_bonus=num_at(item, "system.armor.magicalBonus", 0.0) or 0.0,
        dex_cap=dex_cap,
    )


def equipped_armor(ctx: CharacterContext) -> ArmorPiece | None:
    """The equipped body armour with the highest base (ties keep item order)."""
    best: ArmorPiece | None = None
    for item in ctx.items:
        piece = _armor_piece(item)
        if piece is None or piece.is_shield:
            continue
        if best is None or piece.total > best.total:
            best = piece
    return best


def equipped_shields(ctx: CharacterContext) -> list[ArmorPiece]:
    """Every equipped shield, in item order."""
    shields = []
    for item in ctx.items:
        piece = _armor_piece(item)
        if piece is not None and piece.is_shield:
            shields.append(piece)
    return shields


# =============================================================================
# Inputs shared by the strategies
# =============================================================================


@dataclass(frozen=True)
class ArmorInputs:
    """Components every strategy draws on.

    Attributes:
        armor: Body armour total, or 10 unarmoured.
        shield: Sum of equipped shields.
        dex_mod: Effective, uncapped DEX modifier.
        dex: DEX modifier after the armour's cap.
        bonus: Aggregated AC bonus.
        minimum: Lowest allowed armour class.
        equipment_bonus: Magical bonuses of the armour and shields.
    """

    armor: float
    shield: float
    dex_mod: float
    dex: float
    bonus: float
    minimum: float
    equipment_bonus: float = 0.0
    armor_item: ArmorPiece | None = field(default=None, compare=False)

    @property
    def default_value(self) -> float:
        return self.armor + self.shield + self.dex + self.bonus

    def tokens(self) -> dict[str, float]:
        values = {
            "armor": self.armor,
            "base": self.armor + self.dex,
            "shield": self.shield,
            "dex": self.dex,
            "bonus": self.bonus,
        }
        tokens: dict[str, float] = {}
        for name, value in values.items():
            tokens[f"attributes.ac.{name}"] = value
            tokens[name] = value
        return tokens


def ac_bonus(ctx: CharacterContext) -> float:
    """Snapshot AC bonus formula plus AC-bonus effects plus ADD-mode AC-value effects."""
    resolve = ctx.resolver()
    base = ctx.evaluate_bonus(get_path(ctx.system, "attributes.ac.bonus"), field="attributes.ac.bonus")
    bonus = accumulate(base, ctx.changes_for(StatTarget.AC_BONUS), resolve).value
    value_adds = [c for c in ctx.changes_for(StatTarget.AC_VALUE) if c.mode is ChangeMode.ADD]
    return accumulate(bonus, value_adds, resolve).value


def ac_minimum(ctx: CharacterContext) -> float:
    """AC floor from the snapshot and AC-minimum effects (default 0)."""
    base = ctx.evaluate_bonus(get_path(ctx.system, "attributes.ac.min"), field="attributes.ac.min")
    return accumulate(base, ctx.changes_for(StatTarget.AC_MIN), ctx.resolver()).value


def armor_inputs(ctx: CharacterContext) -> ArmorInputs:
    """Gather equipment, DEX and bonus components for the strategies."""
    armor_item = equipped_armor(ctx)
    shields = equipped_shields(ctx)
    dex_mod = ctx.abilities.raw_mod("dex")
    dex = dex_mod
    if armor_item is not None and armor_item.dex_cap is not None:
        dex = min(dex_mod, armor_item.dex_cap)
    equipment_bonus = sum(piece.magical_bonus for piece in shields)
    if armor_item is not None:
        equipment_bonus += armor_item.magical_bonus
    return ArmorInputs(
        armor=armor_item.total if armor_item is not None else float(UNARMORED_AC),
        shield=sum(piece.total for piece in shields),
        dex_mod=dex_mod,
        dex=dex,
        bonus=ac_bonus(ctx),
        minimum=ac_minimum(ctx),
        equipment_bonus=equipment_bonus,
        armor_item=armor_item,
    )


# =============================================================================
# Strategies
# =============================================================================


def ac_formula(ctx: CharacterContext) -> tuple[str | None, bool]:
    """The explicit AC formula in force, and whether an effect supplied it."""
    formula: str | None = None
    from_effect = False
    for change in ctx.changes_for(StatTarget.AC_FORMULA):
        if not isinstance(change.value, str) or not change.value.strip():
            continue
        if change.mode is ChangeMode.ADD and formula:
            formula = f"({formula}) + ({change.value})"
        else:
            formula = change.value
        from_effect = True
    if formula:
        return formula, from_effect

    calc = str_at(ctx.system, "attributes.ac.calc")
    if calc in AC_CALC_FORMULAS:
        return AC_CALC_FORMULAS[calc], False
    declared = str_at(ctx.system, "attributes.ac.formula").strip()
    if declared and calc in ("", "custom"):
        return declared, False
    return None, False


def formula_strategy(ctx: CharacterContext, inputs: ArmorInputs) -> float | None:
    """Explicit formula, with implicit shield and bonus terms."""
    formula, _ = ac_formula(ctx)
    if not formula:
        return None
    if _ARMOR_PLUS_DEX.match(formula):
        return inputs.armor + inputs.dex_mod + inputs.shield + inputs.bonus

    result = ctx.evaluate(formula, extra=inputs.tokens())
    if result is not None:
        if not _SHIELD_TOKEN.search(formula):
            result += inputs.shield
        if not _BONUS_TOKEN.search(formula):
            result += inputs.bonus
        return result

    if _ARMOR_TOKEN.search(formula) and _DEX_TOKEN.search(formula):
        logger.debug("AC formula failed, using armour + DEX fallback", character=ctx.name, formula=formula)
        return inputs.armor + inputs.dex_mod + inputs.shield + inputs.bonus
    logger.debug("AC formula failed with no fallback", character=ctx.name, formula=formula)
    return None


def flat_override_strategy(ctx: CharacterContext, inputs: ArmorInputs) -> float | None:
    """Flat armour class set by an effect."""
    changes = ctx.changes_for(StatTarget.AC_FLAT)
    if not changes:
        return None
    base = num_at(ctx.system, "attributes.ac.flat", 0.0) or 0.0
    return accumulate(base, changes, ctx.resolver()).value + inputs.bonus


def value_override_strategy(ctx: CharacterContext, inputs: ArmorInputs) -> float | None:
    """Armour class value set directly by a non-additive effect."""
    changes = [c for c in ctx.changes_for(StatTarget.AC_VALUE) if c.mode is not ChangeMode.ADD]
    if not changes:
        return None
    base = num_at(ctx.system, "attributes.ac.value", 0.0) or 0.0
    return accumulate(base, changes, ctx.resolver()).value + inputs.bonus


def snapshot_value_strategy(ctx: CharacterContext, inputs: ArmorInputs) -> float | None:
    """Explicit numeric armour class stored in the snapshot."""
    if str_at(ctx.system, "attributes.ac.calc") in AC_FLAT_CALCS:
        flat = num_at(ctx.system, "attributes.ac.flat")
        if flat is not None:
            return flat + inputs.bonus
    value = num_at(ctx.system, "attributes.ac.value")
    if value is None:
        return None
    return value + inputs.bonus


def default_strategy(ctx: CharacterContext, inputs: ArmorInputs) -> float | None:
    """Equipped armour (or 10) + shields + capped DEX + bonus."""
    return inputs.default_value


ArmorStrategy = Callable[["CharacterContext", ArmorInputs], "float | None"]

AC_STRATEGIES: tuple[tuple[str, ArmorStrategy], ...] = (
    ("formula", formula_strategy),
    ("flat_override", flat_override_strategy),
    ("value_override", value_override_strategy),
    ("snapshot_value", snapshot_value_strategy),
    ("default", default_strategy),
)


@dataclass(frozen=True)
class ArmorClassResult(StatValue):
    """Armour class plus the strategy that produced it."""

    source: str = "default"


def armor_class(ctx: CharacterContext) -> ArmorClassResult:
    """Compute the effective armour class.

    Args:
        ctx: The character context.

    Returns:
        The rounded armour class, clamped to the AC minimum.
    """
    inputs = armor_inputs(ctx)
    source, raw = "default", inputs.default_value
    for name, strategy in AC_STRATEGIES:
        result = strategy(ctx, inputs)
        if result is not None:
            source, raw = name, result
            break

    value = round_half_up(max(raw, inputs.minimum))
    augmented = inputs.bonus != 0 or inputs.equipment_bonus != 0
    if source in ("flat_override", "value_override"):
        augmented = True
    elif source == "formula":
        _, from_effect = ac_formula(ctx)
        augmented = augmented or from_effect or value != round_half_up(inputs.default_value)
    logger.debug("Armour class resolved", character=ctx.name, source=source, value=value)
    return ArmorClassResult(value=value, augmented=augmented, source=source)


__all__ = [
    "ArmorPiece",
    "ArmorInputs",
    "ArmorClassResult",
    "AC_STRATEGIES",
    "equipped_armor",
    "equipped_shields",
    "armor_inputs",
    "ac_bonus",
    "ac_minimum",
    "ac_formula",
    "armor_class",
]
