"""Saving throws, skills, initiative and roll-mode resolution.

Check and save bonuses that several calculators share (global bonuses and
per-ability check/save bonuses) are folded once into a ``BonusBundle`` and
memoized on the character context.

Roll modes sum signed contributions from roll-mode changes, the
advantage/disadvantage flag convention and conditions, then collapse the
total to a single ``RollMode``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from character_vault.core.constants import (
    ABILITY_CODES,
    EXHAUSTION_CHECK_PENALTY_LEVEL,
    EXHAUSTION_SAVE_PENALTY_LEVEL,
    PASSIVE_BASE,
    PASSIVE_ROLL_MODE_STEP,
    SKILL_DEFAULT_ABILITIES,
    SKILL_LABELS,
)
from character_vault.core.logging import get_logger
from character_vault.engine.accessors import get_path, mapping_at, num_at, round_half_up, str_at, try_number
from character_vault.engine.modifiers import Accumulation, accumulate
from character_vault.engine.results import CheckValue
from character_vault.models.enums import CheckKind, Condition, RollMode, StatTarget


if TYPE_CHECKING:
    from character_vault.engine.context import CharacterContext
    from character_vault.engine.effects import DecodedChange


logger = get_logger(__name__)


# =============================================================================
# Shared Bonuses
# =============================================================================


@dataclass(frozen=True)
class BonusBundle:
    """Check and save bonuses shared across calculators.

    Attributes:
        global_check: ``bonuses.abilities.check`` after effects.
        global_save: ``bonuses.abilities.save`` after effects.
        global_skill: ``bonuses.abilities.skill`` after effects.
        check: Per-ability check bonus after effects.
        save: Per-ability save bonus after effects.
    """

    global_check: Accumulation
    global_save: Accumulation
    global_skill: Accumulation
    check: dict[str, Accumulation] = field(default_factory=dict)
    save: dict[str, Accumulation] = field(default_factory=dict)

    def ability_check(self, code: str) -> float:
        bonus = self.check.get(code)
        return bonus.value if bonus else 0.0

    def ability_save(self, code: str) -> float:
        bonus = self.save.get(code)
        return bonus.value if bonus else 0.0


def _bonus(ctx: CharacterContext, path: str, changes: list[DecodedChange]) -> Accumulation:
    base = ctx.evaluate_bonus(get_path(ctx.system, path), field=path)
    return accumulate(base, changes, ctx.resolver())


def compute_bonuses(ctx: CharacterContext) -> BonusBundle:
    """Evaluate snapshot bonus formulas and fold the matching effects.

    Args:
        ctx: The character context.

    Returns:
        The bonus bundle.
    """
    return BonusBundle(
        global_check=_bonus(ctx, "bonuses.abilities.check", ctx.changes_for(StatTarget.GLOBAL_CHECK_BONUS)),
        global_save=_bonus(ctx, "bonuses.abilities.save", ctx.changes_for(StatTarget.GLOBAL_SAVE_BONUS)),
        global_skill=_bonus(ctx, "bonuses.abilities.skill", ctx.changes_for(StatTarget.GLOBAL_SKILL_BONUS)),
        check={
            code: _bonus(
                ctx,
                f"abilities.{code}.bonuses.check",
                ctx.changes_for(StatTarget.ABILITY_CHECK_BONUS, code, include_all=True),
            )
            for code in ABILITY_CODES
        },
        save={
            code: _bonus(
                ctx,
                f"abilities.{code}.bonuses.save",
                ctx.changes_for(StatTarget.ABILITY_SAVE_BONUS, code, include_all=True),
            )
            for code in ABILITY_CODES
        },
    )


def proficiency_term(proficiency: float, multiplier: float) -> int:
    """Proficiency contribution of a roll, fractional results rounded down.

    Example:
        >>> proficiency_term(3, 0.5)
        1
    """
    return math.floor(proficiency * multiplier)


# =============================================================================
# Roll Mode
# =============================================================================


def _flag_applies(change: DecodedChange, kind: CheckKind, ability: str | None, skill: str | None) -> bool:
    if change.scope is None:
        return True
    if change.scope is CheckKind.CHECK:
        # Skills and initiative are ability checks too.
        if kind not in (CheckKind.CHECK, CheckKind.SKILL, CheckKind.INITIATIVE):
            return False
        return change.qualifier is None or change.qualifier == ability
    if change.scope is CheckKind.SAVE:
        return kind is CheckKind.SAVE and (change.qualifier is None or change.qualifier == ability)
    if change.scope is CheckKind.SKILL:
        return kind is CheckKind.SKILL and (change.qualifier is None or change.qualifier == skill)
    return change.scope is kind


def _condition_penalty(ctx: CharacterContext, kind: CheckKind, ability: str | None) -> int:
    conditions = ctx.conditions
    penalty = 0
    if kind in (CheckKind.CHECK, CheckKind.SKILL, CheckKind.INITIATIVE):
        if Condition.POISONED in conditions:
            penalty -= 1
        if conditions.get(Condition.EXHAUSTION, 0) >= EXHAUSTION_CHECK_PENALTY_LEVEL:
            penalty -= 1
    if kind is CheckKind.SAVE:
        if conditions.get(Condition.EXHAUSTION, 0) >= EXHAUSTION_SAVE_PENALTY_LEVEL:
            penalty -= 1
        if Condition.RESTRAINED in conditions and ability == "dex":
            penalty -= 1
    return penalty


def roll_mode(
    ctx: CharacterContext,
    kind: CheckKind,
    *,
    ability: str | None = None,
    skill: str | None = None,
    snapshot_mode: Any = None,
) -> RollMode:
    """Resolve the advantage state of one roll.

    Args:
        ctx: The character context.
        kind: Roll family.
        ability: Ability the roll uses (checks, saves, skills, initiative).
        skill: Skill code for skill rolls.
        snapshot_mode: Roll mode stored in the snapshot, used as the base.

    Returns:
        The collapsed roll mode.
    """
    qualifier = skill if kind is CheckKind.SKILL else ability
    mode_changes = [
        change
        for change in ctx.roll_mode_changes(kind)
        if kind is CheckKind.INITIATIVE or change.qualifier is None or change.qualifier == qualifier
    ]
    base = try_number(snapshot_mode) or 0.0
    total = accumulate(base, mode_changes, ctx.resolver()).value

    for change in ctx.changes_for(StatTarget.ADVANTAGE_FLAG):
        if ctx.flag_truthy(change) and _flag_applies(change, kind, ability, skill):
            total += change.sign

    total += _condition_penalty(ctx, kind, ability)
    return RollMode.collapse(total)


# =============================================================================
# Saving Throws
# =============================================================================


@dataclass(frozen=True)
class SaveResult(CheckValue):
    """Saving throw bonus for one ability."""

    ability: str = ""
    label: str = ""
    proficient: float = 0.0


def saving_throw(ctx: CharacterContext, code: str) -> SaveResult:
    """Compute the saving throw bonus for one ability.

    ``modifier + floor(prof * multiplier) + ability save bonus + global save bonus``,
    with the multiplier effect-adjustable and clamped to at least 0.
    """
    abilities = ctx.abilities
    bonuses = ctx.bonuses
    multiplier = accumulate(
        num_at(ctx.system, f"abilities.{code}.proficient", 0.0) or 0.0,
        ctx.changes_for(StatTarget.SAVE_PROFICIENCY, code, include_all=True),
        ctx.resolver(),
    )
    proficient = max(0.0, multiplier.value)
    save_bonus = bonuses.save[code]
    total = (
        abilities.raw_mod(code)
        + proficiency_term(abilities.proficiency, proficient)
        + save_bonus.value
        + bonuses.global_save.value
    )
    augmented = (
        abilities[code].augmented
        or abilities.proficiency_augmented
        or multiplier.changed
        or save_bonus.value != 0
        or bonuses.global_save.value != 0
    )
    return SaveResult(
        value=round_half_up(total),
        augmented=augmented,
        roll_mode=roll_mode(
            ctx,
            CheckKind.SAVE,
            ability=code,
            snapshot_mode=get_path(ctx.system, f"abilities.{code}.save.roll.mode"),
        ),
        ability=code,
        label=abilities[code].label,
        proficient=proficient,
    )


def saving_throws(ctx: CharacterContext) -> dict[str, SaveResult]:
    """Saving throws for every ability, in sheet order."""
    return {code: saving_throw(ctx, code) for code in ABILITY_CODES}


# =============================================================================
# Skills
# =============================================================================


@dataclass(frozen=True)
class SkillResult(CheckValue):
    """Skill check bonus and passive score."""

    skill: str = ""
    label: str = ""
    ability: str = ""
    proficient: float = 0.0
    passive: int = PASSIVE_BASE


def skill_codes(ctx: CharacterContext) -> list[str]:
    """Standard skill codes followed by any extra skills the snapshot declares."""
    codes = list(SKILL_DEFAULT_ABILITIES)
    codes.extend(code for code in mapping_at(ctx.system, "skills") if code not in SKILL_DEFAULT_ABILITIES)
    return codes


def skill_check(ctx: CharacterContext, code: str) -> SkillResult:
    """Compute one skill's check bonus and passive score.

    Args:
        ctx: The character context.
        code: Skill code (``prc``, ``ste``...).

    Returns:
        The skill result. Skills with no governing ability roll a bare
        modifier of 0.
    """
    raw = mapping_at(ctx.system, f"skills.{code}")
    ability = str_at(raw, "ability") or SKILL_DEFAULT_ABILITIES.get(code, "")
    abilities = ctx.abilities
    bonuses = ctx.bonuses
    resolve = ctx.resolver()

    multiplier = accumulate(
        num_at(raw, "value", 0.0) or 0.0,
        ctx.changes_for(StatTarget.SKILL_PROFICIENCY, code),
        resolve,
    )
    proficient = max(0.0, multiplier.value)
    skill_bonus = accumulate(
        ctx.evaluate_bonus(get_path(raw, "bonuses.check"), field=f"skills.{code}.bonuses.check"),
        ctx.changes_for(StatTarget.SKILL_BONUS, code),
        resolve,
    )
    extra = (
        skill_bonus.value
        + bonuses.ability_check(ability)
        + bonuses.global_check.value
        + bonuses.global_skill.value
    )
    total = abilities.raw_mod(ability) + proficiency_term(abilities.proficiency, proficient) + extra
    value = round_half_up(total)

    mode = roll_mode(
        ctx,
        CheckKind.SKILL,
        ability=ability,
        skill=code,
        snapshot_mode=get_path(raw, "roll.mode"),
    )
    passive_bonus = accumulate(
        ctx.evaluate_bonus(get_path(raw, "bonuses.passive"), field=f"skills.{code}.bonuses.passive"),
        ctx.changes_for(StatTarget.SKILL_PASSIVE, code),
        resolve,
    )
    passive = PASSIVE_BASE + value + round_half_up(passive_bonus.value) + PASSIVE_ROLL_MODE_STEP * int(mode)

    augmented = (
        (ability in abilities.scores and abilities[ability].augmented)
        or abilities.proficiency_augmented
        or multiplier.changed
        or extra != 0
    )
    return SkillResult(
        value=value,
        augmented=augmented,
        roll_mode=mode,
        skill=code,
        label=str_at(raw, "label") or SKILL_LABELS.get(code, code),
        ability=ability,
        proficient=proficient,
        passive=passive,
    )


def skills(ctx: CharacterContext) -> dict[str, SkillResult]:
    """Every skill, standard skills first."""
    return {code: skill_check(ctx, code) for code in skill_codes(ctx)}


# =============================================================================
# Initiative
# =============================================================================


@dataclass(frozen=True)
class InitiativeResult(CheckValue):
    """Initiative bonus and the ability it rolls with."""

    ability: str = "dex"


def initiative(ctx: CharacterContext) -> InitiativeResult:
    """Compute the initiative bonus: ability modifier plus the bonus formula.

    The ability is ``attributes.init.ability`` when set, otherwise DEX.
    """
    ability = str_at(ctx.system, "attributes.init.ability") or "dex"
    if ability not in ABILITY_CODES:
        logger.debug("Unknown initiative ability, using dex", character=ctx.name, ability=ability)
        ability = "dex"
    bonus = accumulate(
        ctx.evaluate_bonus(get_path(ctx.system, "attributes.init.bonus"), field="attributes.init.bonus"),
        ctx.changes_for(StatTarget.INIT_BONUS),
        ctx.resolver(),
    )
    abilities = ctx.abilities
    return InitiativeResult(
        value=round_half_up(abilities.raw_mod(ability) + bonus.value),
        augmented=bonus.value != 0 or abilities[ability].augmented or ability != "dex",
        roll_mode=roll_mode(
            ctx,
            CheckKind.INITIATIVE,
            ability=ability,
            snapshot_mode=get_path(ctx.system, "attributes.init.roll.mode"),
        ),
        ability=ability,
    )


__all__ = [
    "BonusBundle",
    "SaveResult",
    "SkillResult",
    "InitiativeResult",
    "compute_bonuses",
    "proficiency_term",
    "roll_mode",
    "saving_throw",
    "saving_throws",
    "skill_codes",
    "skill_check",
    "skills",
    "initiative",
]
