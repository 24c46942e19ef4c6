"""Roster index: sorted entries, search, and generation-stamped reloads.

A reload is a two-step affair so that slow loads cannot race: the caller
takes a token with ``begin_reload()``, gathers payloads however long that
takes, then hands them to ``commit()``. Only the newest token may commit;
a superseded load completes as a no-op. Every commit throws away the
previous entries together with the sheets computed for them.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator
from typing import Any

from character_vault.core.config import EngineSettings, get_settings
from character_vault.core.exceptions import RosterError
from character_vault.core.logging import get_logger, log_context
from character_vault.engine.sheet import CharacterSheet, compute_sheet, roster_meta, search_corpus
from character_vault.models.roster import RosterEntry
from character_vault.models.snapshot import actor_from_payload


logger = get_logger(__name__)


def entry_id(payload: Any) -> str:
    """Stable id of a payload: actor ``_id``, payload ``id``, else a fresh uuid."""
    actor = actor_from_payload(payload)
    for candidate in (actor.get("_id"), payload.get("id") if isinstance(payload, dict) else None):
        if isinstance(candidate, str) and candidate:
            return candidate
    return uuid.uuid4().hex


def build_entry(payload: Any, *, settings: EngineSettings | None = None) -> RosterEntry:
    """Build the roster entry for one payload.

    Args:
        payload: A parsed snapshot document.
        settings: Engine settings; the application settings when omitted.

    Returns:
        The entry with summary lines and search corpus filled in.
    """
    actor = actor_from_payload(payload)
    name = actor.get("name")
    return RosterEntry(
        id=entry_id(payload),
        name=name if isinstance(name, str) and name else "Unnamed",
        meta=roster_meta(payload, settings=settings),
        corpus=search_corpus(payload),
        payload=payload if isinstance(payload, dict) else {},
    )


class Roster:
    """Loaded characters, sorted by name.

    Example:
        >>> roster = Roster()
        >>> token = roster.begin_reload()
        >>> roster.commit(token, [{"systemId": "dnd5e", "actor": {"_id": "a1", "name": "Ada"}}])
        True
        >>> [entry.name for entry in roster.search("ada")]
        ['Ada']
    """

    def __init__(self, *, settings: EngineSettings | None = None) -> None:
        self._settings = settings
        self._entries: list[RosterEntry] = []
        self._sheets: dict[str, CharacterSheet] = {}
        self._generation = 0

    @property
    def settings(self) -> EngineSettings:
        return self._settings or get_settings().engine

    @property
    def generation(self) -> int:
        """Token of the newest reload."""
        return self._generation

    @property
    def entries(self) -> list[RosterEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RosterEntry]:
        return iter(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return any(entry.id == entry_id for entry in self._entries)

    # -------------------------------------------------------------------------
    # Reloads
    # -------------------------------------------------------------------------

    def begin_reload(self) -> int:
        """Start a reload and return its token; older tokens become stale."""
        self._generation += 1
        return self._generation

    def commit(self, token: int, payloads: Iterable[Any]) -> bool:
        """Replace the roster with freshly loaded payloads.

        Args:
            token: Token from ``begin_reload()``.
            payloads: Parsed snapshot documents.

        Returns:
            True when applied; False when a newer reload superseded the token.
        """
        if token != self._generation:
            logger.info("Discarding superseded reload", token=token, current=self._generation)
            return False
        settings = self.settings
        with log_context(generation=token):
            entries = [build_entry(payload, settings=settings) for payload in payloads]
            entries.sort(key=lambda entry: entry.name.casefold())
            self._entries = entries
            self._sheets = {}
            logger.info("Roster loaded", count=len(entries))
        return True

    def reload(self, payloads: Iterable[Any]) -> bool:
        """Begin and immediately commit a reload."""
        return self.commit(self.begin_reload(), payloads)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def search(self, query: str = "") -> list[RosterEntry]:
        """Entries whose corpus contains the query; blank returns everything."""
        return [entry for entry in self._entries if entry.matches(query)]

    def get(self, entry_id: str) -> RosterEntry:
        """Look up one entry.

        Raises:
            RosterError: If no entry has this id.
        """
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        raise RosterError("Unknown roster entry", entry_id=entry_id)

    def sheet(self, entry_id: str) -> CharacterSheet:
        """Computed sheet for one entry, cached until the next commit."""
        sheet = self._sheets.get(entry_id)
        if sheet is None:
            sheet = compute_sheet(self.get(entry_id).payload, settings=self.settings)
            self._sheets[entry_id] = sheet
        return sheet


__all__ = ["Roster", "build_entry", "entry_id"]
