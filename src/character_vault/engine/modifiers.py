"""Modifier accumulation for active-effect changes.

A running numeric value is folded through a sequence of changes, each with
its own application mode. CUSTOM is treated as an implicit set, the same as
OVERRIDE, which is the convention for simple numeric payloads.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from character_vault.engine.accessors import try_number
from character_vault.models.enums import ChangeMode


if TYPE_CHECKING:
    from character_vault.engine.effects import DecodedChange


def _as_mode(mode: Any) -> ChangeMode | None:
    if isinstance(mode, ChangeMode):
        return mode
    number = try_number(mode)
    if number is None or not number.is_integer():
        return None
    try:
        return ChangeMode(int(number))
    except ValueError:
        return None


def apply_mode(current: float, value: Any, mode: Any) -> float:
    """Fold one change into a running value.

    Args:
        current: The running value.
        value: The change value; must be a finite number.
        mode: A ChangeMode or its numeric code.

    Returns:
        The new running value; ``current`` unchanged for unknown modes or
        non-finite values.

    Example:
        >>> apply_mode(10, 2, ChangeMode.ADD)
        12.0
        >>> apply_mode(10, 14, ChangeMode.DOWNGRADE)
        10.0
    """
    number = try_number(value)
    resolved_mode = _as_mode(mode)
    if number is None or resolved_mode is None or not math.isfinite(current):
        return current
    match resolved_mode:
        case ChangeMode.ADD:
            result = float(current + number)
        case ChangeMode.MULTIPLY:
            result = float(current * number)
        case ChangeMode.DOWNGRADE:
            result = float(min(current, number))
        case ChangeMode.UPGRADE:
            result = float(max(current, number))
        case ChangeMode.CUSTOM | ChangeMode.OVERRIDE:
            result = number
        case _:
            return current
    # Overflow to infinity leaves the running value untouched.
    return result if math.isfinite(result) else current


@dataclass(frozen=True)
class Accumulation:
    """Result of folding a change sequence.

    Attributes:
        value: Final running value.
        base: Starting value.
        applied: Number of changes whose value resolved and was applied.
    """

    value: float
    base: float
    applied: int

    @property
    def delta(self) -> float:
        """Net change from the starting value."""
        return self.value - self.base

    @property
    def changed(self) -> bool:
        """Whether the changes moved the value at all."""
        return self.value != self.base


def accumulate(
    base: float,
    changes: Iterable[DecodedChange],
    resolve: Callable[[DecodedChange], float | None],
) -> Accumulation:
    """Fold changes into ``base`` in order.

    Args:
        base: Starting value.
        changes: Decoded changes, already in application order.
        resolve: Turns a change's raw value into a number (None skips it).

    Returns:
        The accumulation record.
    """
    value = float(base)
    applied = 0
    for change in changes:
        number = resolve(change)
        if number is None:
            continue
        value = apply_mode(value, number, change.mode)
        applied += 1
    return Accumulation(value=value, base=float(base), applied=applied)


__all__ = ["apply_mode", "accumulate", "Accumulation"]
