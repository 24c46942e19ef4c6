"""Custom exception hierarchy for Character Vault.

All exceptions inherit from CharacterVaultError, enabling unified error
handling at the application boundary while preserving domain-specific
context. The derived-statistics engine itself never lets these escape a
calculator; they surface only from configuration and snapshot loading.

Example:
    >>> from character_vault.core.exceptions import SnapshotError
    >>> raise SnapshotError("Invalid JSON", source_file="data/actors/mira.json")
"""

from __future__ import annotations

from typing import Any


class CharacterVaultError(Exception):
    """Base exception for all Character Vault errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception."""
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(CharacterVaultError):
    """Raised when application configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with the offending key.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


# =============================================================================
# Snapshot Exceptions
# =============================================================================


class SnapshotError(CharacterVaultError):
    """Raised when a snapshot document or manifest cannot be read.

    The roster catches this per document, logs it and skips the file,
    so one broken export never prevents the rest of the roster loading.
    """

    def __init__(
        self,
        message: str,
        *,
        source_file: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize snapshot error with source file context.

        Args:
            message: Human-readable error description.
            source_file: Path to the file that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if source_file:
            combined_details["source_file"] = source_file
        super().__init__(message, details=combined_details)


class RosterError(CharacterVaultError):
    """Raised on roster misuse, such as looking up an unknown entry strictly."""

    def __init__(
        self,
        message: str,
        *,
        entry_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize roster error with entry context.

        Args:
            message: Human-readable error description.
            entry_id: Identifier of the roster entry involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if entry_id:
            combined_details["entry_id"] = entry_id
        super().__init__(message, details=combined_details)


# =============================================================================
# Engine Exceptions
# =============================================================================


class FormulaError(CharacterVaultError):
    """Raised inside the formula evaluator when a formula is rejected.

    The evaluator converts this into its evaluation-failure signal before
    returning, so calculators only ever see a value or ``None``.
    """

    def __init__(
        self,
        message: str,
        *,
        formula: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize formula error with the rejected formula.

        Args:
            message: Human-readable error description.
            formula: The formula text that failed.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if formula is not None:
            combined_details["formula"] = formula
        super().__init__(message, details=combined_details)


__all__ = [
    "CharacterVaultError",
    "ConfigurationError",
    "SnapshotError",
    "RosterError",
    "FormulaError",
]
