"""Enumeration types for Character Vault.

These enums name the pieces of a Foundry dnd5e snapshot the engine reasons
about: effect application modes, item types, spellcasting progressions,
roll modes, conditions, and the stat targets effect changes decode into.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class ChangeMode(IntEnum):
    """Application mode of an active-effect change.

    Numeric values match the codes stored in exported snapshots.
    """

    CUSTOM = 0
    MULTIPLY = 1
    ADD = 2
    DOWNGRADE = 3
    UPGRADE = 4
    OVERRIDE = 5

    @property
    def replaces(self) -> bool:
        """Whether the mode replaces the running value outright.

        CUSTOM is treated as an implicit set for simple numeric payloads.
        """
        return self in (ChangeMode.CUSTOM, ChangeMode.OVERRIDE)


class RollMode(IntEnum):
    """Collapsed advantage state of a d20 roll."""

    DISADVANTAGE = -1
    NORMAL = 0
    ADVANTAGE = 1

    @classmethod
    def collapse(cls, total: float) -> RollMode:
        """Collapse a signed contribution total to a single roll mode.

        Args:
            total: Sum of signed advantage (+) and disadvantage (-) sources.

        Returns:
            ADVANTAGE, NORMAL or DISADVANTAGE; magnitude never stacks further.
        """
        if total > 0:
            return cls.ADVANTAGE
        if total < 0:
            return cls.DISADVANTAGE
        return cls.NORMAL


class ItemType(StrEnum):
    """Item document types found in a dnd5e actor export."""

    CLASS = "class"
    SUBCLASS = "subclass"
    EQUIPMENT = "equipment"
    SPELL = "spell"
    FEAT = "feat"
    WEAPON = "weapon"
    CONSUMABLE = "consumable"
    TOOL = "tool"
    LOOT = "loot"
    CONTAINER = "container"
    BACKPACK = "backpack"


class SpellProgression(StrEnum):
    """Spellcasting progression declared by a class or subclass item."""

    NONE = "none"
    FULL = "full"
    HALF = "half"
    THIRD = "third"
    ARTIFICER = "artificer"
    PACT = "pact"


class Condition(StrEnum):
    """Conditions that force disadvantage on some d20 rolls."""

    POISONED = "poisoned"
    RESTRAINED = "restrained"
    EXHAUSTION = "exhaustion"


class CheckKind(StrEnum):
    """Which family of d20 roll a roll-mode source applies to."""

    CHECK = "check"
    SAVE = "save"
    SKILL = "skill"
    INITIATIVE = "initiative"


class StatTarget(StrEnum):
    """Stat an effect change targets once its key has been decoded."""

    AC_FLAT = "ac.flat"
    AC_VALUE = "ac.value"
    AC_BONUS = "ac.bonus"
    AC_FORMULA = "ac.formula"
    AC_MIN = "ac.min"

    HP_VALUE = "hp.value"
    HP_MAX = "hp.max"
    HP_TEMP = "hp.temp"
    HP_TEMPMAX = "hp.tempmax"
    HP_BONUS_OVERALL = "hp.bonuses.overall"
    HP_BONUS_LEVEL = "hp.bonuses.level"

    MOVEMENT = "movement"
    MOVEMENT_ALL = "movement.all"
    SENSE = "senses"

    ABILITY_SCORE = "ability.value"
    ABILITY_MOD = "ability.mod"
    PROFICIENCY = "prof"
    SAVE_PROFICIENCY = "ability.proficient"
    ABILITY_CHECK_BONUS = "ability.bonuses.check"
    ABILITY_SAVE_BONUS = "ability.bonuses.save"
    GLOBAL_CHECK_BONUS = "bonuses.abilities.check"
    GLOBAL_SAVE_BONUS = "bonuses.abilities.save"
    GLOBAL_SKILL_BONUS = "bonuses.abilities.skill"

    SKILL_PROFICIENCY = "skill.value"
    SKILL_BONUS = "skill.bonuses.check"
    SKILL_PASSIVE = "skill.bonuses.passive"

    INIT_BONUS = "init.bonus"

    SPELL_DC_BONUS = "bonuses.spell.dc"
    SPELL_DC = "spelldc"
    SPELL_SLOT_OVERRIDE = "spells.override"
    PACT_SLOT_OVERRIDE = "spells.pact.override"

    ROLL_MODE = "roll.mode"
    ADVANTAGE_FLAG = "flags.advantage"


__all__ = [
    "ChangeMode",
    "RollMode",
    "ItemType",
    "SpellProgression",
    "Condition",
    "CheckKind",
    "StatTarget",
]
