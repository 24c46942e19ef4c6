"""Pytest configuration and shared fixtures.

This module provides common fixtures for the Character Vault test suite:
settings cache handling plus small builders for Foundry dnd5e actor
documents, items and active effects.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pytest


if TYPE_CHECKING:
    from collections.abc import Generator

    from character_vault.core.config import EngineSettings
    from character_vault.engine.context import CharacterContext


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from character_vault.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def engine_settings() -> EngineSettings:
    """Default engine settings, independent of the environment."""
    from character_vault.core.config import EngineSettings

    return EngineSettings(zero_result_is_failure=True, rich_system_id="dnd5e", minimum_level=1)


# =============================================================================
# Snapshot Builders
# =============================================================================


@pytest.fixture
def make_change() -> Callable[..., dict[str, Any]]:
    """Build a raw effect change; the mode defaults to ADD (2)."""

    def _make(key: str, value: Any, mode: int = 2) -> dict[str, Any]:
        return {"key": key, "value": value, "mode": mode}

    return _make


@pytest.fixture
def make_effect() -> Callable[..., dict[str, Any]]:
    """Build an active effect from raw changes."""

    def _make(
        *changes: dict[str, Any],
        name: str = "Effect",
        disabled: bool = False,
        statuses: tuple[str, ...] = (),
        transfer: bool | None = None,
    ) -> dict[str, Any]:
        effect: dict[str, Any] = {
            "name": name,
            "disabled": disabled,
            "changes": list(changes),
            "statuses": list(statuses),
        }
        if transfer is not None:
            effect["transfer"] = transfer
        return effect

    return _make


@pytest.fixture
def make_armor() -> Callable[..., dict[str, Any]]:
    """Build an equipment item carrying armour or a shield."""

    def _make(
        value: float,
        armor_type: str = "medium",
        *,
        dex: float | None = None,
        magical_bonus: float = 0,
        equipped: bool = True,
        name: str | None = None,
    ) -> dict[str, Any]:
        armor: dict[str, Any] = {"type": armor_type, "value": value, "magicalBonus": magical_bonus}
        if dex is not None:
            armor["dex"] = dex
        return {
            "name": name or f"{armor_type.title()} Armor",
            "type": "equipment",
            "system": {"equipped": equipped, "armor": armor},
        }

    return _make


@pytest.fixture
def make_class() -> Callable[..., dict[str, Any]]:
    """Build a class item."""

    def _make(
        name: str,
        levels: int,
        *,
        progression: str | None = None,
        ability: str | None = None,
        hit_die: str = "d8",
        spent: int = 0,
        identifier: str | None = None,
    ) -> dict[str, Any]:
        system: dict[str, Any] = {
            "levels": levels,
            "hitDice": hit_die,
            "hitDiceUsed": spent,
            "identifier": identifier or name.lower(),
        }
        if progression is not None or ability is not None:
            system["spellcasting"] = {"progression": progression or "none", "ability": ability or ""}
        return {"name": name, "type": "class", "system": system}

    return _make


@pytest.fixture
def make_actor() -> Callable[..., dict[str, Any]]:
    """Build a dnd5e character actor document.

    ``abilities`` maps ability codes to scores; any extra keyword arguments
    are merged into the ``system`` block.
    """

    def _make(
        *,
        name: str = "Mira",
        abilities: dict[str, float] | None = None,
        attributes: dict[str, Any] | None = None,
        items: list[dict[str, Any]] | tuple[dict[str, Any], ...] = (),
        effects: list[dict[str, Any]] | tuple[dict[str, Any], ...] = (),
        actor_id: str = "actor-1",
        **system: Any,
    ) -> dict[str, Any]:
        return {
            "_id": actor_id,
            "name": name,
            "type": "character",
            "system": {
                "abilities": {code: {"value": score} for code, score in (abilities or {}).items()},
                "attributes": dict(attributes or {}),
                **system,
            },
            "items": list(items),
            "effects": list(effects),
        }

    return _make


@pytest.fixture
def make_payload() -> Callable[..., dict[str, Any]]:
    """Wrap an actor in the export envelope."""

    def _make(actor: dict[str, Any], system_id: str = "dnd5e") -> dict[str, Any]:
        return {
            "exportedAt": "2024-05-01T12:00:00.000Z",
            "systemId": system_id,
            "foundryVersion": "11.315",
            "actor": actor,
        }

    return _make


@pytest.fixture
def make_context(engine_settings: EngineSettings) -> Callable[[dict[str, Any]], CharacterContext]:
    """Build a CharacterContext with default engine settings."""
    from character_vault.engine.context import CharacterContext

    def _make(actor: dict[str, Any]) -> CharacterContext:
        return CharacterContext(actor, settings=engine_settings)

    return _make
