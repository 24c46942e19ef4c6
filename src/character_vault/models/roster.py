"""Roster models.

A roster entry is the unit the roster list, the search box and the sheet
view share: the raw payload plus the summary lines and the search corpus
derived from it once at load time.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from character_vault.models.snapshot import actor_from_payload, guess_system


# =============================================================================
# Summary Lines
# =============================================================================


class RosterMeta(BaseModel):
    """Two display lines summarising a character.

    Attributes:
        line1: Class names and level (``Wizard • Lv 5``).
        line2: Combat summary (``AC 13  ·  HP 20/20  ·  PB +3``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    line1: str
    line2: str


class ItemCard(BaseModel):
    """A named item with an optional one-line subtitle."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    subtitle: str = ""


# =============================================================================
# Roster Entry
# =============================================================================


class RosterEntry(BaseModel):
    """One loaded character in the roster.

    Attributes:
        id: Actor ``_id``, else the payload ``id``, else a generated id.
        name: Actor name, or ``Unnamed``.
        meta: Summary lines.
        corpus: Lower-cased search text.
        payload: The parsed snapshot document, untouched.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str
    meta: RosterMeta
    corpus: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)

    @computed_field(description="Game system the snapshot was exported from")
    @property
    def system_id(self) -> str:
        return guess_system(self.payload)

    @property
    def actor(self) -> dict[str, Any]:
        return actor_from_payload(self.payload)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match against the corpus.

        An empty (or blank) query matches everything.
        """
        needle = query.strip().lower()
        return not needle or needle in self.corpus


__all__ = ["RosterMeta", "ItemCard", "RosterEntry"]
