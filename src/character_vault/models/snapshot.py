"""Snapshot envelope model.

Exports produced by the Foundry export macro wrap the actor document in a
small envelope (``exportedAt``, ``systemId``, ``foundryVersion``, ``actor``).
Hand-made exports are less tidy: the actor may sit under ``data.actor`` or
``document``, or the payload may be the bare actor. ``SnapshotEnvelope``
normalises all of those without validating the actor itself, which stays a
plain mapping read through the engine's safe accessors.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


UNKNOWN_SYSTEM = "unknown"


def actor_from_payload(payload: Any) -> dict[str, Any]:
    """Locate the actor document inside a payload.

    Args:
        payload: A parsed snapshot document of any shape.

    Returns:
        The actor mapping, or an empty dict when none can be found.
    """
    if not isinstance(payload, dict):
        return {}
    for candidate in (
        payload.get("actor"),
        (payload.get("data") or {}).get("actor") if isinstance(payload.get("data"), dict) else None,
        payload.get("document"),
    ):
        if isinstance(candidate, dict):
            return candidate
    return payload


def guess_system(payload: Any) -> str:
    """Work out which game system a payload was exported from.

    Args:
        payload: A parsed snapshot document of any shape.

    Returns:
        The system id, or ``"unknown"``.
    """
    if not isinstance(payload, dict):
        return UNKNOWN_SYSTEM
    actor = actor_from_payload(payload)
    system = actor.get("system") if isinstance(actor.get("system"), dict) else {}
    for candidate in (payload.get("systemId"), system.get("id"), actor.get("systemId")):
        if isinstance(candidate, str) and candidate:
            return candidate
    return UNKNOWN_SYSTEM


class SnapshotEnvelope(BaseModel):
    """A normalised snapshot payload.

    Attributes:
        exported_at: ISO timestamp of the export, when recorded.
        system_id: Game system id (``dnd5e`` for the rich sheet).
        foundry_version: Foundry core version that produced the export.
        actor: The actor document, untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    exported_at: str | None = Field(default=None, alias="exportedAt")
    system_id: str = Field(default=UNKNOWN_SYSTEM, alias="systemId")
    foundry_version: str | None = Field(default=None, alias="foundryVersion")
    actor: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> SnapshotEnvelope:
        """Build an envelope from any payload shape.

        Args:
            payload: A parsed snapshot document.

        Returns:
            The normalised envelope; never raises for odd shapes.
        """
        raw = payload if isinstance(payload, dict) else {}
        exported_at = raw.get("exportedAt")
        foundry_version = raw.get("foundryVersion")
        return cls(
            exported_at=exported_at if isinstance(exported_at, str) else None,
            system_id=guess_system(raw),
            foundry_version=str(foundry_version) if foundry_version is not None else None,
            actor=actor_from_payload(raw),
        )

    @property
    def actor_id(self) -> str | None:
        """The actor's document id, if exported."""
        value = self.actor.get("_id")
        return value if isinstance(value, str) and value else None

    @property
    def name(self) -> str:
        """The actor's name, or ``Unnamed``."""
        value = self.actor.get("name")
        return value if isinstance(value, str) and value else "Unnamed"


__all__ = [
    "UNKNOWN_SYSTEM",
    "SnapshotEnvelope",
    "actor_from_payload",
    "guess_system",
]
