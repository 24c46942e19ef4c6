"""Rules constants for the dnd5e derived-statistics engine.

This module holds the fixed tables the calculators consult: ability and
skill codes as they appear in Foundry dnd5e exports, spell slot tables
indexed by caster-equivalent level, and the armour-class presets.
"""

from __future__ import annotations

# =============================================================================
# Abilities and Skills
# =============================================================================

ABILITY_CODES: tuple[str, ...] = ("str", "dex", "con", "int", "wis", "cha")
"""Ability codes in sheet order."""

ABILITY_LABELS: dict[str, str] = {
    "str": "Strength",
    "dex": "Dexterity",
    "con": "Constitution",
    "int": "Intelligence",
    "wis": "Wisdom",
    "cha": "Charisma",
}

SKILL_DEFAULT_ABILITIES: dict[str, str] = {
    "acr": "dex",
    "ani": "wis",
    "arc": "int",
    "ath": "str",
    "dec": "cha",
    "his": "int",
    "ins": "wis",
    "itm": "cha",
    "inv": "int",
    "med": "wis",
    "nat": "int",
    "prc": "wis",
    "prf": "cha",
    "per": "cha",
    "rel": "int",
    "sle": "dex",
    "ste": "dex",
    "sur": "wis",
}
"""Governing ability used when a skill does not declare its own."""

SKILL_LABELS: dict[str, str] = {
    "acr": "Acrobatics",
    "ani": "Animal Handling",
    "arc": "Arcana",
    "ath": "Athletics",
    "dec": "Deception",
    "his": "History",
    "ins": "Insight",
    "itm": "Intimidation",
    "inv": "Investigation",
    "med": "Medicine",
    "nat": "Nature",
    "prc": "Perception",
    "prf": "Performance",
    "per": "Persuasion",
    "rel": "Religion",
    "sle": "Sleight of Hand",
    "ste": "Stealth",
    "sur": "Survival",
}

# =============================================================================
# Movement and Senses
# =============================================================================

MOVEMENT_TYPES: tuple[str, ...] = ("walk", "fly", "swim", "climb", "burrow")
SENSE_TYPES: tuple[str, ...] = ("darkvision", "blindsight", "tremorsense", "truesight")
DEFAULT_DISTANCE_UNITS = "ft"

# =============================================================================
# Armour Class
# =============================================================================

UNARMORED_AC = 10
"""Armour base used when no body armour is equipped."""

AC_CALC_FORMULAS: dict[str, str] = {
    "mage": "13 + @abilities.dex.mod",
    "draconic": "13 + @abilities.dex.mod",
    "unarmoredMonk": "10 + @abilities.dex.mod + @abilities.wis.mod",
    "unarmoredBarb": "10 + @abilities.dex.mod + @abilities.con.mod",
}
"""Preset calculations that behave like an explicit formula."""

AC_FLAT_CALCS = frozenset({"flat", "natural"})
"""Calculations whose ``ac.flat`` is the explicit numeric armour class."""

BODY_ARMOR_TYPES = frozenset({"light", "medium", "heavy", "natural"})
SHIELD_ARMOR_TYPE = "shield"

# =============================================================================
# Proficiency and Levels
# =============================================================================

MIN_CHARACTER_LEVEL = 1
MAX_CHARACTER_LEVEL = 20
BASE_PROFICIENCY_BONUS = 2
SPELL_DC_BASE = 8
PASSIVE_BASE = 10
PASSIVE_ROLL_MODE_STEP = 5
"""Passive scores shift by this much under advantage or disadvantage."""

DEFAULT_HIT_DIE = 8

# =============================================================================
# Spell Slots
# =============================================================================

SPELL_LEVELS: tuple[int, ...] = (1, 2, 3, 4, 5, 6, 7, 8, 9)

# Player's Handbook progression, indexed by caster-equivalent level
# (full casters count 1:1).
STANDARD_SPELL_SLOT_TABLE: dict[int, dict[int, int]] = {
    1:  {1: 2},
    2:  {1: 3},
    3:  {1: 4, 2: 2},
    4:  {1: 4, 2: 3},
    5:  {1: 4, 2: 3, 3: 2},
    6:  {1: 4, 2: 3, 3: 3},
    7:  {1: 4, 2: 3, 3: 3, 4: 1},
    8:  {1: 4, 2: 3, 3: 3, 4: 2},
    9:  {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    10: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
    11: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    12: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    13: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    14: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    15: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    16: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    17: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1, 9: 1},
    18: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 1, 7: 1, 8: 1, 9: 1},
    19: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 1, 8: 1, 9: 1},
    20: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 2, 8: 1, 9: 1},
}

SPELL_SLOT_DELAY = 2
"""Caster levels the default table lags behind the standard one."""

# Default table: each row unlocks two caster levels later than the standard
# table, so a 5th-level full caster has 4 first- and 2 second-level slots.
SPELL_SLOT_TABLE: dict[int, dict[int, int]] = {
    level: STANDARD_SPELL_SLOT_TABLE[max(1, level - SPELL_SLOT_DELAY)]
    for level in STANDARD_SPELL_SLOT_TABLE
}

# Pact magic: total pact-class level -> (slots, slot level)
PACT_SLOT_TABLE: dict[int, tuple[int, int]] = {
    1:  (1, 1),
    2:  (2, 1),
    3:  (2, 2),
    4:  (2, 2),
    5:  (2, 3),
    6:  (2, 3),
    7:  (2, 4),
    8:  (2, 4),
    9:  (2, 5),
    10: (2, 5),
    11: (3, 5),
    12: (3, 5),
    13: (3, 5),
    14: (3, 5),
    15: (3, 5),
    16: (3, 5),
    17: (4, 5),
    18: (4, 5),
    19: (4, 5),
    20: (4, 5),
}

# =============================================================================
# Conditions
# =============================================================================

EXHAUSTION_CHECK_PENALTY_LEVEL = 1
"""Exhaustion level from which ability checks roll with disadvantage."""

EXHAUSTION_SAVE_PENALTY_LEVEL = 3
"""Exhaustion level from which saving throws roll with disadvantage."""


__all__ = [
    "ABILITY_CODES",
    "ABILITY_LABELS",
    "SKILL_DEFAULT_ABILITIES",
    "SKILL_LABELS",
    "MOVEMENT_TYPES",
    "SENSE_TYPES",
    "DEFAULT_DISTANCE_UNITS",
    "UNARMORED_AC",
    "AC_CALC_FORMULAS",
    "AC_FLAT_CALCS",
    "BODY_ARMOR_TYPES",
    "SHIELD_ARMOR_TYPE",
    "MIN_CHARACTER_LEVEL",
    "MAX_CHARACTER_LEVEL",
    "BASE_PROFICIENCY_BONUS",
    "SPELL_DC_BASE",
    "PASSIVE_BASE",
    "PASSIVE_ROLL_MODE_STEP",
    "DEFAULT_HIT_DIE",
    "SPELL_LEVELS",
    "STANDARD_SPELL_SLOT_TABLE",
    "SPELL_SLOT_DELAY",
    "SPELL_SLOT_TABLE",
    "PACT_SLOT_TABLE",
    "EXHAUSTION_CHECK_PENALTY_LEVEL",
    "EXHAUSTION_SAVE_PENALTY_LEVEL",
]
