"""Derived-statistics engine for dnd5e character snapshots.

Every calculator takes a ``CharacterContext`` (one per snapshot per render)
and returns plain values or small frozen records. Calculators never raise:
missing data falls back to documented defaults and failed formulas fall
back per calculator.

Submodules:
    accessors: Tolerant readers for loosely-typed snapshot data
    formula: Sandboxed evaluation of ``@token`` formulas (simpleeval)
    modifiers: Folding effect changes by application mode
    effects: Active-effect collection and change-key decoding
    context: Per-character memoized computation context
    abilities: Effective ability scores and proficiency bonus
    armor: Armour class resolution strategies
    vitals: Hit points and hit dice
    movement: Movement speeds and senses
    checks: Saving throws, skills, initiative, roll modes
    spellcasting: Spell save DC and spell slots
    sheet: Whole-sheet aggregation and roster summaries

Example:
    >>> from character_vault.engine import CharacterContext, armor_class
    >>> ctx = CharacterContext({"system": {"abilities": {"dex": {"value": 16}}}})
    >>> armor_class(ctx).value
    13
"""

from __future__ import annotations

# =============================================================================
# Foundations
# =============================================================================
from character_vault.engine.accessors import (
    ability_modifier,
    get_path,
    round_half_up,
    try_number,
)
from character_vault.engine.context import CharacterContext
from character_vault.engine.effects import (
    ActiveEffect,
    DecodedChange,
    collect_active_effects,
    decode_change,
)
from character_vault.engine.formula import FormulaEvaluator, evaluate_formula
from character_vault.engine.modifiers import Accumulation, accumulate, apply_mode
from character_vault.engine.results import CheckValue, DistanceValue, StatValue

# =============================================================================
# Calculators
# =============================================================================
from character_vault.engine.abilities import (
    AbilityBundle,
    AbilityScore,
    effective_abilities,
    proficiency_from_level,
)
from character_vault.engine.armor import ArmorClassResult, armor_class
from character_vault.engine.checks import (
    InitiativeResult,
    SaveResult,
    SkillResult,
    initiative,
    roll_mode,
    saving_throws,
    skills,
)
from character_vault.engine.movement import Movement, Senses, movement, senses
from character_vault.engine.spellcasting import (
    SpellDcResult,
    SpellSlotRow,
    SpellSlots,
    spell_save_dc,
    spell_slots,
)
from character_vault.engine.vitals import HitDice, HitPoints, hit_dice, hit_points

# =============================================================================
# Aggregates
# =============================================================================
from character_vault.engine.sheet import (
    CharacterSheet,
    SheetStats,
    compute_sheet,
    roster_meta,
    search_corpus,
)


__all__ = [
    # Foundations
    "ability_modifier",
    "get_path",
    "round_half_up",
    "try_number",
    "CharacterContext",
    "ActiveEffect",
    "DecodedChange",
    "collect_active_effects",
    "decode_change",
    "FormulaEvaluator",
    "evaluate_formula",
    "Accumulation",
    "accumulate",
    "apply_mode",
    "StatValue",
    "DistanceValue",
    "CheckValue",
    # Calculators
    "AbilityBundle",
    "AbilityScore",
    "effective_abilities",
    "proficiency_from_level",
    "ArmorClassResult",
    "armor_class",
    "SaveResult",
    "SkillResult",
    "InitiativeResult",
    "saving_throws",
    "skills",
    "initiative",
    "roll_mode",
    "Movement",
    "Senses",
    "movement",
    "senses",
    "SpellDcResult",
    "SpellSlotRow",
    "SpellSlots",
    "spell_save_dc",
    "spell_slots",
    "HitPoints",
    "HitDice",
    "hit_points",
    "hit_dice",
    # Aggregates
    "CharacterSheet",
    "SheetStats",
    "compute_sheet",
    "roster_meta",
    "search_corpus",
]
