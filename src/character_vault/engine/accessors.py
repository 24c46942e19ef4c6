"""Tolerant readers for loosely-typed snapshot data.

Exported snapshots are JSON trees where any field may be missing, null,
a number, a numeric string, or something else entirely. Every read the
engine makes goes through these helpers, which return ``None`` or a
caller-chosen default instead of raising.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from typing import Any


_NUMERIC_STRING = re.compile(r"^[+-]?\d+(\.\d+)?$")
_TRUTHY_STRINGS = frozenset({"true", "yes", "on"})


def try_number(value: Any) -> float | None:
    """Read a finite number.

    Accepts real numbers and strings such as ``"3"``, ``"+2"`` or ``"-1.5"``.
    Booleans are not numbers here.

    Args:
        value: Anything.

    Returns:
        The number as a float, or None. Never NaN and never a silent 0.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip()
        if _NUMERIC_STRING.match(text):
            return float(text)
    return None


def bool_from_loose(value: Any) -> bool:
    """Interpret a loosely-typed flag.

    Args:
        value: A bool, number, or string.

    Returns:
        True for ``True``, non-zero numbers, and ``"true"``/``"yes"``/``"on"``.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _TRUTHY_STRINGS:
        return True
    number = try_number(value)
    return bool(number)


def get_path(data: Any, path: str | Iterable[str], default: Any = None) -> Any:
    """Walk a dotted path through nested mappings and lists.

    Args:
        data: Root of the tree.
        path: Dotted string (``"attributes.hp.max"``) or sequence of segments.
        default: Returned when any segment is missing.

    Returns:
        The value found, or ``default``.
    """
    segments = path.split(".") if isinstance(path, str) else list(path)
    current = data
    for segment in segments:
        if isinstance(current, Mapping):
            if segment not in current:
                return default
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return default
            current = current[index]
        else:
            return default
    return default if current is None else current


def num_at(data: Any, path: str, default: float | None = None) -> float | None:
    """Read a number at a dotted path."""
    number = try_number(get_path(data, path))
    return default if number is None else number


def str_at(data: Any, path: str, default: str = "") -> str:
    """Read a non-empty string at a dotted path."""
    value = get_path(data, path)
    return value if isinstance(value, str) and value else default


def mapping_at(data: Any, path: str) -> dict[str, Any]:
    """Read a mapping at a dotted path, or an empty dict."""
    value = get_path(data, path)
    return dict(value) if isinstance(value, Mapping) else {}


def list_at(data: Any, path: str) -> list[Any]:
    """Read a list at a dotted path, or an empty list."""
    value = get_path(data, path)
    return list(value) if isinstance(value, list) else []


def label_of(value: Any, items: Iterable[Mapping[str, Any]] = ()) -> str | None:
    """Resolve a free-text or reference field to a display string.

    Race and background fields may hold plain text, an object carrying a
    ``name``/``label``/``value``, or the ``_id`` of an owned item.

    Args:
        value: The raw field.
        items: Owned items used to resolve id references.

    Returns:
        The display string, or None when nothing usable is present.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        for item in items:
            if isinstance(item, Mapping) and item.get("_id") == text:
                name = item.get("name")
                return name if isinstance(name, str) and name else text
        return text
    if isinstance(value, Mapping):
        for key in ("name", "label", "value"):
            candidate = value.get(key)
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
    return None


# =============================================================================
# Arithmetic helpers
# =============================================================================


def ability_modifier(score: float) -> int:
    """Default ability modifier: ``floor((score - 10) / 2)``.

    Example:
        >>> ability_modifier(15)
        2
        >>> ability_modifier(8)
        -1
    """
    return math.floor((score - 10) / 2)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up (``2.5 -> 3``, ``-2.5 -> -2``).

    Non-finite input rounds to 0.
    """
    if not math.isfinite(value):
        return 0
    return math.floor(value + 0.5)


def clamp(value: float, low: float | None = None, high: float | None = None) -> float:
    """Clamp ``value`` into ``[low, high]``; either bound may be omitted."""
    if low is not None and value < low:
        value = low
    if high is not None and value > high:
        value = high
    return value


__all__ = [
    "try_number",
    "bool_from_loose",
    "get_path",
    "num_at",
    "str_at",
    "mapping_at",
    "list_at",
    "label_of",
    "ability_modifier",
    "round_half_up",
    "clamp",
]
