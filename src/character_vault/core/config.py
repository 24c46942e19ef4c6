"""Configuration management for Character Vault.

This module provides centralized configuration using pydantic-settings,
supporting environment variables, .env files, and runtime overrides.

Example:
    >>> from character_vault.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.engine.zero_result_is_failure
    True

Environment Variables:
    CHARACTER_VAULT_DATA_DIR: Directory holding the manifest and snapshots
    CHARACTER_VAULT_LOCAL_STORE_PATH: JSON file of locally imported snapshots
    CHARACTER_VAULT_ENGINE_ZERO_RESULT_IS_FAILURE: Treat token formulas evaluating to 0 as failed
    CHARACTER_VAULT_EXPORT_PRUNE_PATTERN: Regex of keys stripped from exported snapshots
    CHARACTER_VAULT_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from character_vault.core.exceptions import ConfigurationError


class StorageSettings(BaseSettings):
    """Configuration for snapshot storage locations.

    Attributes:
        data_dir: Directory holding the manifest and exported snapshots.
        manifest_name: File name of the manifest inside data_dir.
        local_store_path: JSON file collecting locally imported snapshots.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHARACTER_VAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding manifest.json and snapshot files",
    )
    manifest_name: str = Field(
        default="manifest.json",
        min_length=1,
        description="Manifest file name inside data_dir",
    )
    local_store_path: Path = Field(
        default=Path("data/local_payloads.json"),
        description="JSON array of locally imported snapshot payloads",
    )

    @property
    def manifest_path(self) -> Path:
        """Full path to the manifest file."""
        return self.data_dir / self.manifest_name


class EngineSettings(BaseSettings):
    """Configuration for the derived-statistics engine.

    Attributes:
        zero_result_is_failure: Treat a token formula evaluating to exactly 0
            as a failed evaluation (likely token-mapping failure).
        rich_system_id: The only ruleset that gets derived statistics.
        minimum_level: Floor applied to character level before deriving
            the proficiency bonus.
        standard_spell_slots: Use the standard spell slot table instead of
            the default one, which unlocks slots two caster levels later.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHARACTER_VAULT_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    zero_result_is_failure: bool = Field(
        default=True,
        description="Treat token formulas that evaluate to exactly 0 as failed",
    )
    rich_system_id: str = Field(
        default="dnd5e",
        description="System id rendered with derived statistics",
    )
    minimum_level: int = Field(
        default=1,
        ge=1,
        le=20,
        description="Lowest level used for level-derived values",
    )
    standard_spell_slots: bool = Field(
        default=False,
        description="Use the standard spell slot table",
    )


class ExportSettings(BaseSettings):
    """Configuration for sanitising actor exports.

    Attributes:
        strip_flags: Remove module flags from the actor and its items.
        prune_pattern: Case-insensitive regex; matching keys are dropped recursively.
        only_player_characters: Export only actors with a player owner.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHARACTER_VAULT_EXPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    strip_flags: bool = Field(default=True, description="Remove flags from exports")
    prune_pattern: str = Field(
        default=r"(gm|secret|private|hidden|password|tokenSecret|gmnotes)",
        description="Keys matching this pattern are removed from exports",
    )
    only_player_characters: bool = Field(
        default=True,
        description="Export only actors owned by a player",
    )

    @field_validator("prune_pattern", mode="after")
    @classmethod
    def validate_prune_pattern(cls, value: str) -> str:
        """Ensure the prune pattern compiles.

        Args:
            value: The regular expression source.

        Returns:
            The validated pattern.

        Raises:
            ConfigurationError: If the pattern is not a valid regex.
        """
        try:
            re.compile(value, re.IGNORECASE)
        except re.error as exc:
            raise ConfigurationError(
                f"prune_pattern is not a valid regular expression: {exc}",
                config_key="prune_pattern",
            ) from exc
        return value

    @property
    def prune_regex(self) -> re.Pattern[str]:
        """Compiled, case-insensitive prune pattern."""
        return re.compile(self.prune_pattern, re.IGNORECASE)


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        storage: Snapshot storage settings.
        engine: Derived-statistics engine settings.
        export: Export sanitiser settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHARACTER_VAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    app_name: str = Field(default="Character Vault", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    storage: StorageSettings = Field(default_factory=StorageSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If configuration is missing or invalid.
    """
    try:
        return Settings()
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access."""
    get_settings.cache_clear()


__all__ = [
    "StorageSettings",
    "EngineSettings",
    "ExportSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
