"""Snapshot loading from the manifest and the local import store.

Two sources feed the roster:

- The manifest (``data/manifest.json``): a JSON array of ``{file, name?}``
  entries, each ``file`` resolved relative to the manifest's directory.
- The local store: a JSON array of payloads collected by ``import_files``.

A missing or broken manifest is not fatal: the roster can run purely from
imported files. Individual unreadable snapshots are skipped with a warning.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from character_vault.core.config import Settings, get_settings
from character_vault.core.exceptions import SnapshotError
from character_vault.core.logging import get_logger


logger = get_logger(__name__)


# =============================================================================
# Single Documents
# =============================================================================


def read_json(path: Path) -> Any:
    """Parse one JSON file.

    Args:
        path: File to read.

    Returns:
        The parsed document.

    Raises:
        SnapshotError: If the file cannot be read or is not valid JSON.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SnapshotError(f"Cannot read file: {exc.strerror or exc}", source_file=str(path)) from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Invalid JSON: {exc.msg} at line {exc.lineno}", source_file=str(path)) from exc


def read_payload(path: Path) -> dict[str, Any]:
    """Read one snapshot document.

    Raises:
        SnapshotError: If the file is unreadable or not a JSON object.
    """
    payload = read_json(path)
    if not isinstance(payload, dict):
        raise SnapshotError("Snapshot is not a JSON object", source_file=str(path))
    return payload


# =============================================================================
# Manifest
# =============================================================================


def load_manifest(path: Path) -> list[dict[str, Any]]:
    """Load every snapshot listed in a manifest.

    Args:
        path: The manifest file.

    Returns:
        Payloads in manifest order; unreadable entries are skipped.

    Raises:
        SnapshotError: If the manifest itself is unreadable or not an array.
    """
    manifest = read_json(path)
    if not isinstance(manifest, list):
        raise SnapshotError("Manifest is not a JSON array", source_file=str(path))

    payloads: list[dict[str, Any]] = []
    for position, entry in enumerate(manifest):
        file_name = entry.get("file") if isinstance(entry, dict) else None
        if not isinstance(file_name, str) or not file_name:
            logger.warning("Skipping manifest entry without file", manifest=str(path), position=position)
            continue
        try:
            payloads.append(read_payload(path.parent / file_name))
        except SnapshotError as exc:
            logger.warning("Skipping unreadable snapshot", error=exc.message, **exc.details)
    logger.info("Manifest loaded", manifest=str(path), count=len(payloads))
    return payloads


# =============================================================================
# Local Store
# =============================================================================


def load_local_payloads(path: Path) -> list[Any]:
    """Read the local import store.

    Never raises: a missing store is empty, and so is a malformed one.
    """
    if not path.exists():
        return []
    try:
        stored = read_json(path)
    except SnapshotError as exc:
        logger.warning("Ignoring malformed local store", error=exc.message, **exc.details)
        return []
    if not isinstance(stored, list):
        logger.warning("Ignoring local store that is not an array", source_file=str(path))
        return []
    return stored


def save_local_payloads(path: Path, payloads: list[Any]) -> None:
    """Overwrite the local import store."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payloads, indent=2), encoding="utf-8")


def import_files(paths: Iterable[Path], store: Path) -> list[dict[str, Any]]:
    """Append snapshot files to the local store.

    Args:
        paths: Snapshot files to import.
        store: The local store file.

    Returns:
        The payloads that were imported; unreadable files are skipped.
    """
    imported: list[dict[str, Any]] = []
    for path in paths:
        try:
            imported.append(read_payload(Path(path)))
        except SnapshotError as exc:
            logger.warning("Skipping bad import", error=exc.message, **exc.details)
    if imported:
        save_local_payloads(store, [*load_local_payloads(store), *imported])
    logger.info("Imported snapshots", count=len(imported), store=str(store))
    return imported


# =============================================================================
# Everything
# =============================================================================


def load_all(settings: Settings | None = None) -> list[Any]:
    """Manifest payloads followed by locally imported payloads.

    Args:
        settings: Application settings; the cached settings when omitted.

    Returns:
        Every payload that could be loaded.
    """
    storage = (settings or get_settings()).storage
    manifest_payloads: list[dict[str, Any]] = []
    try:
        manifest_payloads = load_manifest(storage.manifest_path)
    except SnapshotError as exc:
        logger.warning("Manifest unavailable, using local imports only", error=exc.message, **exc.details)
    return [*manifest_payloads, *load_local_payloads(storage.local_store_path)]


__all__ = [
    "read_json",
    "read_payload",
    "load_manifest",
    "load_local_payloads",
    "save_local_payloads",
    "import_files",
    "load_all",
]
