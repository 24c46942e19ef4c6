"""Plain result records handed to the rendering layer."""

from __future__ import annotations

from dataclasses import dataclass

from character_vault.models.enums import RollMode


@dataclass(frozen=True)
class StatValue:
    """A computed number and whether it differs from the book default.

    Attributes:
        value: The final value.
        augmented: True when an effect, equipment bonus or non-default
            formula contributed a non-zero delta. Display emphasis only.
    """

    value: int
    augmented: bool = False


@dataclass(frozen=True)
class DistanceValue:
    """A speed or sense range, kept unrounded (``7.5`` stays ``7.5``)."""

    value: float
    augmented: bool = False


@dataclass(frozen=True)
class CheckValue:
    """A d20 roll bonus with its collapsed advantage state."""

    value: int
    augmented: bool = False
    roll_mode: RollMode = RollMode.NORMAL


__all__ = ["StatValue", "DistanceValue", "CheckValue"]
