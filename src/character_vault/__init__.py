"""Character Vault - derived character sheets from Foundry VTT exports.

Loads exported dnd5e actor snapshots, computes the statistics a sheet
shows (armour class, hit points, saves, skills, spell DC, spell slots...)
from base values, equipment and active effects, and keeps a searchable
roster of the loaded characters.

Example:
    >>> from character_vault import Roster, compute_sheet, load_all
    >>>
    >>> roster = Roster()
    >>> roster.reload(load_all())
    >>> for entry in roster.search("wizard"):
    ...     print(entry.name, entry.meta.line1, entry.meta.line2)
    >>>
    >>> sheet = roster.sheet(roster.entries[0].id)
    >>> sheet.stats.armor_class.value

Modules:
    core: Configuration, logging, constants and exceptions.
    models: Enumerations, the snapshot envelope and roster models.
    engine: The derived-statistics engine.
    roster: Snapshot loading, search index and export sanitiser.
"""

from __future__ import annotations

# Core
from character_vault.core.config import Settings, get_settings
from character_vault.core.exceptions import CharacterVaultError
from character_vault.core.logging import configure_logging, get_logger

# Engine
from character_vault.engine.context import CharacterContext
from character_vault.engine.sheet import CharacterSheet, compute_sheet, roster_meta, search_corpus

# Roster
from character_vault.roster.index import Roster
from character_vault.roster.loader import import_files, load_all


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "CharacterVaultError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Engine
    "CharacterContext",
    "CharacterSheet",
    "compute_sheet",
    "roster_meta",
    "search_corpus",
    # Roster
    "Roster",
    "import_files",
    "load_all",
]
