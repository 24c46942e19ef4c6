"""Roster: loading snapshots, indexing them for search, and exporting actors.

Submodules:
    loader: Manifest and local-store loading
    index: The sorted, searchable roster with last-load-wins reloads
    export: Actor sanitiser producing snapshot envelopes
"""

from __future__ import annotations

from character_vault.roster.export import (
    export_filename,
    prune,
    sanitise_actor,
    slugify,
    write_exports,
)
from character_vault.roster.index import Roster, build_entry
from character_vault.roster.loader import (
    import_files,
    load_all,
    load_local_payloads,
    load_manifest,
)


__all__ = [
    "Roster",
    "build_entry",
    "load_manifest",
    "load_local_payloads",
    "import_files",
    "load_all",
    "sanitise_actor",
    "prune",
    "slugify",
    "export_filename",
    "write_exports",
]
