"""Hit points and hit dice.

Hit points start from the snapshot (or an estimate from class levels when
the maximum is missing), are adjusted per field by effects, then clamped:
the maximum to at least 0, the current value into ``[0, max + tempmax]``,
and temporary hit points to at least 0.

Hit dice total the class levels; spent dice are clamped per class to that
class's level.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from character_vault.core.constants import DEFAULT_HIT_DIE, MAX_CHARACTER_LEVEL
from character_vault.core.logging import get_logger
from character_vault.engine.accessors import clamp, num_at, round_half_up, str_at
from character_vault.engine.modifiers import accumulate
from character_vault.models.enums import ItemType, StatTarget


if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from character_vault.engine.context import CharacterContext


logger = get_logger(__name__)

_DIE = re.compile(r"d(\d+)")


# =============================================================================
# Hit Points
# =============================================================================


@dataclass(frozen=True)
class HitPoints:
    """Effective hit points.

    Attributes:
        value: Current hit points, within ``[0, effective_max]``.
        max: Maximum hit points, at least 0.
        temp: Temporary hit points, at least 0.
        tempmax: Temporary change to the maximum (may be negative).
        effective_max: ``max(0, max + tempmax)``.
        augmented: True when an effect changed any field.
    """

    value: int
    max: int
    temp: int
    tempmax: int
    effective_max: int
    augmented: bool = False


def class_hit_die(item: Mapping[str, Any]) -> int:
    """Hit die size of a class item (``d10`` -> 10), 8 when undeclared."""
    denomination = str_at(item, "system.hd.denomination") or str_at(item, "system.hitDice")
    match = _DIE.search(denomination)
    return int(match.group(1)) if match else DEFAULT_HIT_DIE


def estimate_max_hp(ctx: CharacterContext) -> float:
    """Estimate maximum hit points from class items.

    The first class level takes the full hit die; every later level takes
    the average (half the die, plus one). Each level adds the CON modifier,
    minimum 1 per level. Each class counts at most 20 levels.

    Returns:
        The estimate, or 0 with no class items.
    """
    con = ctx.abilities.mod("con")
    total = 0
    first = True
    for item in ctx.items_of_type(ItemType.CLASS):
        die = class_hit_die(item)
        levels = int(clamp(num_at(item, "system.levels", 0) or 0, 0, MAX_CHARACTER_LEVEL))
        for _ in range(levels):
            rolled = die if first else die // 2 + 1
            first = False
            total += max(1, rolled + con)
    return float(total)


def hit_points(ctx: CharacterContext) -> HitPoints:
    """Compute effective hit points.

    Args:
        ctx: The character context.

    Returns:
        Clamped hit point record.
    """
    resolve = ctx.resolver()
    base_max = num_at(ctx.system, "attributes.hp.max")
    if base_max is None:
        base_max = estimate_max_hp(ctx)
        logger.debug("Estimated maximum hit points", character=ctx.name, max=base_max)

    max_acc = accumulate(base_max, ctx.changes_for(StatTarget.HP_MAX), resolve)
    overall = accumulate(0.0, ctx.changes_for(StatTarget.HP_BONUS_OVERALL), resolve)
    per_level = accumulate(0.0, ctx.changes_for(StatTarget.HP_BONUS_LEVEL), resolve)
    hp_max = max(0.0, max_acc.value + overall.value + per_level.value * ctx.level)

    tempmax_acc = accumulate(
        num_at(ctx.system, "attributes.hp.tempmax", 0.0) or 0.0,
        ctx.changes_for(StatTarget.HP_TEMPMAX),
        resolve,
    )
    effective_max = max(0.0, hp_max + tempmax_acc.value)

    base_value = num_at(ctx.system, "attributes.hp.value")
    value_acc = accumulate(
        base_max if base_value is None else base_value,
        ctx.changes_for(StatTarget.HP_VALUE),
        resolve,
    )
    temp_acc = accumulate(
        num_at(ctx.system, "attributes.hp.temp", 0.0) or 0.0,
        ctx.changes_for(StatTarget.HP_TEMP),
        resolve,
    )

    augmented = any(
        acc.changed for acc in (max_acc, overall, per_level, tempmax_acc, value_acc, temp_acc)
    )
    effective_max_int = round_half_up(effective_max)
    return HitPoints(
        value=round_half_up(clamp(value_acc.value, 0, effective_max_int)),
        max=round_half_up(hp_max),
        temp=round_half_up(max(0.0, temp_acc.value)),
        tempmax=round_half_up(tempmax_acc.value),
        effective_max=effective_max_int,
        augmented=augmented,
    )


# =============================================================================
# Hit Dice
# =============================================================================


@dataclass(frozen=True)
class HitDice:
    """Hit dice across all classes.

    Attributes:
        total: Sum of class levels.
        used: Spent dice, each class clamped to its own level.
        unused: ``total - used``, at least 0.
        by_die: Remaining dice per denomination (``{"d8": 3}``).
    """

    total: int
    used: int
    unused: int
    by_die: dict[str, int] = field(default_factory=dict)


def hit_dice(ctx: CharacterContext) -> HitDice:
    """Sum hit dice over class items."""
    total = 0
    used = 0
    by_die: dict[str, int] = {}
    for item in ctx.items_of_type(ItemType.CLASS):
        levels = max(0, int(num_at(item, "system.levels", 0) or 0))
        spent = num_at(item, "system.hitDiceUsed")
        if spent is None:
            spent = num_at(item, "system.hd.spent", 0.0) or 0.0
        spent_clamped = int(clamp(spent, 0, levels))
        total += levels
        used += spent_clamped
        die = f"d{class_hit_die(item)}"
        by_die[die] = by_die.get(die, 0) + levels - spent_clamped
    return HitDice(total=total, used=used, unused=max(0, total - used), by_die=by_die)


__all__ = [
    "HitPoints",
    "HitDice",
    "class_hit_die",
    "estimate_max_hp",
    "hit_points",
    "hit_dice",
]
