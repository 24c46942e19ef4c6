"""Movement speeds and senses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from character_vault.core.constants import DEFAULT_DISTANCE_UNITS, MOVEMENT_TYPES, SENSE_TYPES
from character_vault.engine.accessors import bool_from_loose, get_path, num_at, str_at
from character_vault.engine.modifiers import accumulate
from character_vault.engine.results import DistanceValue
from character_vault.models.enums import StatTarget


if TYPE_CHECKING:
    from character_vault.engine.context import CharacterContext
    from character_vault.engine.effects import DecodedChange


@dataclass(frozen=True)
class Movement:
    """Movement speeds per category.

    Attributes:
        speeds: Category -> speed, every category present, each at least 0
            and never rounded.
        units: Distance units label.
        hover: Whether the fly speed is a hover speed.
    """

    speeds: dict[str, DistanceValue] = field(default_factory=dict)
    units: str = DEFAULT_DISTANCE_UNITS
    hover: bool = False

    def nonzero(self) -> dict[str, DistanceValue]:
        """Categories with a speed above 0, in category order."""
        return {name: speed for name, speed in self.speeds.items() if speed.value > 0}


@dataclass(frozen=True)
class Senses:
    """Sense ranges per category plus free-text special senses."""

    ranges: dict[str, DistanceValue] = field(default_factory=dict)
    units: str = DEFAULT_DISTANCE_UNITS
    special: str = ""

    def nonzero(self) -> dict[str, DistanceValue]:
        return {name: sense for name, sense in self.ranges.items() if sense.value > 0}


def _movement_changes(ctx: CharacterContext, category: str) -> list[DecodedChange]:
    # Category-specific and "all" changes interleave in effect order.
    return [
        change
        for change in ctx.changes
        if change.target is StatTarget.MOVEMENT_ALL
        or (change.target is StatTarget.MOVEMENT and change.qualifier == category)
    ]


def _stat(base: float, changes: list[DecodedChange], ctx: CharacterContext) -> DistanceValue:
    acc = accumulate(base, changes, ctx.resolver())
    return DistanceValue(value=max(0.0, acc.value), augmented=acc.changed)


def movement(ctx: CharacterContext) -> Movement:
    """Compute every movement speed.

    Args:
        ctx: The character context.

    Returns:
        Speeds for all categories, clamped to at least 0.
    """
    speeds = {
        category: _stat(
            num_at(ctx.system, f"attributes.movement.{category}", 0.0) or 0.0,
            _movement_changes(ctx, category),
            ctx,
        )
        for category in MOVEMENT_TYPES
    }
    return Movement(
        speeds=speeds,
        units=str_at(ctx.system, "attributes.movement.units") or DEFAULT_DISTANCE_UNITS,
        hover=bool_from_loose(get_path(ctx.system, "attributes.movement.hover")),
    )


def senses(ctx: CharacterContext) -> Senses:
    """Compute every sense range, clamped to at least 0."""
    ranges = {
        sense: _stat(
            num_at(ctx.system, f"attributes.senses.{sense}", 0.0) or 0.0,
            ctx.changes_for(StatTarget.SENSE, sense),
            ctx,
        )
        for sense in SENSE_TYPES
    }
    return Senses(
        ranges=ranges,
        units=str_at(ctx.system, "attributes.senses.units") or DEFAULT_DISTANCE_UNITS,
        special=str_at(ctx.system, "attributes.senses.special").strip(),
    )


__all__ = ["Movement", "Senses", "movement", "senses"]
