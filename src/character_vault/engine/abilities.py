"""Effective ability scores and proficiency bonus.

Base scores, modifiers and the proficiency bonus come from the snapshot
(or from the level heuristic when the bonus is absent). Effects then adjust
each score, each modifier and the proficiency bonus individually. Score and
modifier changes compose additively: when an effect changes a score, the
modifier is re-derived from the new score and any modifier delta already
applied by effects is kept on top.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from character_vault.core.constants import (
    ABILITY_CODES,
    ABILITY_LABELS,
    BASE_PROFICIENCY_BONUS,
    MAX_CHARACTER_LEVEL,
    MIN_CHARACTER_LEVEL,
)
from character_vault.engine.accessors import (
    ability_modifier,
    mapping_at,
    num_at,
    round_half_up,
    str_at,
    try_number,
)
from character_vault.engine.modifiers import accumulate
from character_vault.models.enums import StatTarget


if TYPE_CHECKING:
    from character_vault.engine.context import CharacterContext


def proficiency_from_level(level: float) -> int:
    """Proficiency bonus for a character level.

    The level is clamped into 1-20 first, so the result is always 2-6.

    Example:
        >>> [proficiency_from_level(n) for n in (1, 5, 17, 20)]
        [2, 3, 6, 6]
    """
    clamped = int(min(MAX_CHARACTER_LEVEL, max(MIN_CHARACTER_LEVEL, level)))
    return BASE_PROFICIENCY_BONUS + (clamped - 1) // 4


@dataclass(frozen=True)
class AbilityScore:
    """One effective ability.

    Attributes:
        code: Ability code (``str``, ``dex``...).
        label: Display label.
        score: Effective score.
        modifier: Effective modifier.
        base_score: Score before effects.
        base_modifier: Modifier before effects.
    """

    code: str
    label: str
    score: float
    modifier: float
    base_score: float
    base_modifier: float

    @property
    def augmented(self) -> bool:
        return self.score != self.base_score or self.modifier != self.base_modifier

    @property
    def display_score(self) -> int:
        return round_half_up(self.score)

    @property
    def display_modifier(self) -> int:
        return round_half_up(self.modifier)


@dataclass(frozen=True)
class AbilityBundle:
    """Effective abilities plus proficiency bonus for one character."""

    scores: dict[str, AbilityScore]
    proficiency: float
    base_proficiency: float

    def __getitem__(self, code: str) -> AbilityScore:
        return self.scores[code]

    def __iter__(self) -> Iterator[AbilityScore]:
        return iter(self.scores.values())

    def mod(self, code: str | None) -> int:
        """Effective modifier of an ability, 0 for unknown codes."""
        ability = self.scores.get(code or "")
        return ability.display_modifier if ability else 0

    def raw_mod(self, code: str | None) -> float:
        """Unrounded effective modifier, 0 for unknown codes."""
        ability = self.scores.get(code or "")
        return ability.modifier if ability else 0.0

    @property
    def proficiency_bonus(self) -> int:
        return round_half_up(self.proficiency)

    @property
    def proficiency_augmented(self) -> bool:
        return self.proficiency != self.base_proficiency


def raw_ability(ctx: CharacterContext, code: str) -> tuple[float, float]:
    """Snapshot score and modifier of one ability, before effects.

    An absent score reads as 0. An absent modifier is derived from the score
    when one is present, else 0.
    """
    raw = mapping_at(ctx.system, f"abilities.{code}")
    score = try_number(raw.get("value"))
    if score is None:
        score = try_number(raw.get("score"))
    modifier = try_number(raw.get("mod"))
    if modifier is None:
        modifier = try_number(raw.get("modifier"))
    if modifier is None:
        modifier = 0.0 if score is None else float(ability_modifier(score))
    return (0.0 if score is None else score), modifier


def base_proficiency(ctx: CharacterContext) -> float:
    """Snapshot proficiency bonus, else the level-derived value.

    A present-but-zero bonus is honoured.
    """
    declared = num_at(ctx.system, "attributes.prof")
    if declared is not None:
        return declared
    return float(proficiency_from_level(ctx.level))


def _ability_label(ctx: CharacterContext, code: str) -> str:
    return str_at(ctx.system, f"abilities.{code}.label", ABILITY_LABELS.get(code, code.upper()))


def compute_abilities(ctx: CharacterContext) -> AbilityBundle:
    """Fold ability and proficiency effects over the snapshot values.

    Effect values are resolved against the pre-effect roll data, so an
    effect referencing ``@abilities.dex.mod`` sees the snapshot modifier.

    Args:
        ctx: The character context.

    Returns:
        The effective ability bundle.
    """
    resolve = ctx.resolver(ctx.base_roll_data)
    scores: dict[str, AbilityScore] = {}
    for code in ABILITY_CODES:
        base_score, base_mod = raw_ability(ctx, code)
        score = accumulate(base_score, ctx.changes_for(StatTarget.ABILITY_SCORE, code), resolve)
        modifier = accumulate(base_mod, ctx.changes_for(StatTarget.ABILITY_MOD, code), resolve)
        if score.changed:
            effective_mod = ability_modifier(score.value) + modifier.delta
        else:
            effective_mod = modifier.value
        scores[code] = AbilityScore(
            code=code,
            label=_ability_label(ctx, code),
            score=score.value,
            modifier=float(effective_mod),
            base_score=base_score,
            base_modifier=base_mod,
        )

    prof_base = base_proficiency(ctx)
    prof = accumulate(prof_base, ctx.changes_for(StatTarget.PROFICIENCY), resolve)
    return AbilityBundle(scores=scores, proficiency=prof.value, base_proficiency=prof_base)


def effective_abilities(ctx: CharacterContext) -> AbilityBundle:
    """Memoized effective ability bundle for a character."""
    return ctx.abilities


__all__ = [
    "AbilityScore",
    "AbilityBundle",
    "proficiency_from_level",
    "raw_ability",
    "base_proficiency",
    "compute_abilities",
    "effective_abilities",
]
