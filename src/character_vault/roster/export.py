"""Actor export sanitiser.

Turns a full actor document into a shareable snapshot: ownership and
bookkeeping fields are dropped, module flags optionally stripped, and any
key matching the prune pattern (GM notes, secrets...) removed at every depth.
The result is wrapped in the snapshot envelope the roster loads.
"""

from __future__ import annotations

import copy
import json
import re
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from character_vault.core.config import ExportSettings, get_settings
from character_vault.core.logging import get_logger
from character_vault.engine.accessors import bool_from_loose


logger = get_logger(__name__)

DROPPED_ACTOR_KEYS = ("ownership", "permission", "folder", "sort", "_stats")
SLUG_MAX_LENGTH = 64
SLUG_FALLBACK = "actor"
DEFAULT_SYSTEM_ID = "dnd5e"

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def prune(value: Any, pattern: re.Pattern[str]) -> Any:
    """Recursively drop mapping keys matching ``pattern``.

    Lists are walked element by element; scalars are returned unchanged.
    """
    if isinstance(value, Mapping):
        return {key: prune(item, pattern) for key, item in value.items() if not pattern.search(str(key))}
    if isinstance(value, list):
        return [prune(item, pattern) for item in value]
    return value


def _timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitise_actor(
    actor: Mapping[str, Any],
    *,
    settings: ExportSettings | None = None,
    system_id: str = DEFAULT_SYSTEM_ID,
    foundry_version: str = "unknown",
    exported_at: str | None = None,
) -> dict[str, Any]:
    """Sanitise one actor and wrap it in the snapshot envelope.

    Args:
        actor: The full actor document; never modified.
        settings: Export settings; the application settings when omitted.
        system_id: Game system id recorded in the envelope.
        foundry_version: Foundry version recorded in the envelope.
        exported_at: ISO timestamp; now (UTC) when omitted.

    Returns:
        ``{exportedAt, systemId, foundryVersion, actor}``.
    """
    settings = settings or get_settings().export
    pattern = settings.prune_regex
    cleaned = copy.deepcopy(dict(actor))

    for key in DROPPED_ACTOR_KEYS:
        cleaned.pop(key, None)
    if settings.strip_flags:
        cleaned.pop("flags", None)

    items = cleaned.get("items")
    if isinstance(items, list):
        stripped = []
        for item in items:
            if isinstance(item, dict):
                item.pop("_stats", None)
                if settings.strip_flags:
                    item.pop("flags", None)
            stripped.append(item)
        cleaned["items"] = stripped

    return {
        "exportedAt": exported_at or _timestamp(),
        "systemId": system_id,
        "foundryVersion": foundry_version,
        "actor": prune(cleaned, pattern),
    }


def slugify(name: Any) -> str:
    """File-name slug: lower-case, runs of other characters become ``-``.

    Example:
        >>> slugify("  Mira Quickfoot! ")
        'mira-quickfoot'
        >>> slugify("???")
        'actor'
    """
    text = str(name).strip().lower() if name else SLUG_FALLBACK
    slug = _SLUG_SEPARATORS.sub("-", text).strip("-")
    return slug[:SLUG_MAX_LENGTH] or SLUG_FALLBACK


def export_filename(actor: Mapping[str, Any], taken: Iterable[str] = ()) -> str:
    """``<slug>.json`` for an actor, numbered ``<slug>-2.json``... when taken.

    Example:
        >>> export_filename({"name": "Ada"}, taken={"ada.json"})
        'ada-2.json'
    """
    slug = slugify(actor.get("name"))
    taken_names = set(taken)
    candidate = f"{slug}.json"
    suffix = 2
    while candidate in taken_names:
        candidate = f"{slug}-{suffix}.json"
        suffix += 1
    return candidate


def exportable_actors(
    actors: Iterable[Mapping[str, Any]],
    *,
    settings: ExportSettings | None = None,
) -> list[Mapping[str, Any]]:
    """Character actors, restricted to player-owned ones when configured."""
    settings = settings or get_settings().export
    selected = []
    for actor in actors:
        if actor.get("type") != "character":
            continue
        if settings.only_player_characters and not bool_from_loose(actor.get("hasPlayerOwner")):
            continue
        selected.append(actor)
    return selected


def write_exports(
    actors: Iterable[Mapping[str, Any]],
    directory: Path,
    *,
    settings: ExportSettings | None = None,
    system_id: str = DEFAULT_SYSTEM_ID,
    foundry_version: str = "unknown",
) -> list[Path]:
    """Sanitise exportable actors and write one JSON file per actor.

    All files of one run share the same ``exportedAt`` timestamp. Actors
    whose names slugify alike get numbered file names instead of
    overwriting each other.

    Returns:
        Paths written, in actor order.
    """
    settings = settings or get_settings().export
    exported_at = _timestamp()
    directory.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    used: set[str] = set()
    for actor in exportable_actors(actors, settings=settings):
        payload = sanitise_actor(
            actor,
            settings=settings,
            system_id=system_id,
            foundry_version=foundry_version,
            exported_at=exported_at,
        )
        filename = export_filename(actor, used)
        used.add(filename)
        path = directory / filename
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        written.append(path)
    logger.info("Exported actors", count=len(written), directory=str(directory))
    return written


__all__ = [
    "DROPPED_ACTOR_KEYS",
    "prune",
    "sanitise_actor",
    "slugify",
    "export_filename",
    "exportable_actors",
    "write_exports",
]
