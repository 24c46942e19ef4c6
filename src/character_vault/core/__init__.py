"""Core module providing configuration, logging, constants and exceptions.

Exports:
    Exceptions:
        CharacterVaultError: Base exception for all application errors.
        ConfigurationError: Configuration-related errors.
        SnapshotError: Unreadable snapshot documents or manifests.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        log_context: Tag log lines inside a block.
"""

from __future__ import annotations

from character_vault.core.config import (
    EngineSettings,
    ExportSettings,
    Settings,
    StorageSettings,
    clear_settings_cache,
    get_settings,
)
from character_vault.core.exceptions import (
    CharacterVaultError,
    ConfigurationError,
    FormulaError,
    RosterError,
    SnapshotError,
)
from character_vault.core.logging import (
    configure_logging,
    get_logger,
    log_context,
)


__all__ = [
    # Exceptions
    "CharacterVaultError",
    "ConfigurationError",
    "SnapshotError",
    "RosterError",
    "FormulaError",
    # Configuration
    "Settings",
    "StorageSettings",
    "EngineSettings",
    "ExportSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "log_context",
]
