"""Models for Character Vault.

Submodules:
    enums: Effect modes, roll modes, item types, stat targets
    snapshot: The export envelope and payload helpers
    roster: Roster entries and summary lines (Pydantic V2)
"""

from __future__ import annotations

from character_vault.models.enums import (
    ChangeMode,
    CheckKind,
    Condition,
    ItemType,
    RollMode,
    SpellProgression,
    StatTarget,
)
from character_vault.models.roster import ItemCard, RosterEntry, RosterMeta
from character_vault.models.snapshot import (
    UNKNOWN_SYSTEM,
    SnapshotEnvelope,
    actor_from_payload,
    guess_system,
)


__all__ = [
    # Enums
    "ChangeMode",
    "CheckKind",
    "Condition",
    "ItemType",
    "RollMode",
    "SpellProgression",
    "StatTarget",
    # Snapshot
    "UNKNOWN_SYSTEM",
    "SnapshotEnvelope",
    "actor_from_payload",
    "guess_system",
    # Roster
    "ItemCard",
    "RosterEntry",
    "RosterMeta",
]
