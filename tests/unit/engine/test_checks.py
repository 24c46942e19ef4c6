"""Tests for saving throws, skills, initiative and roll modes."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from character_vault.engine.checks import (
    initiative,
    proficiency_term,
    roll_mode,
    saving_throw,
    saving_throws,
    skill_check,
    skills,
)
from character_vault.engine.context import CharacterContext
from character_vault.models.enums import CheckKind, RollMode


ActorFactory = Callable[..., dict[str, Any]]
ContextFactory = Callable[[dict[str, Any]], CharacterContext]
Factory = Callable[..., dict[str, Any]]


def _flag(make_change: Factory, key: str) -> dict[str, Any]:
    return make_change(key, 1, 5)


@pytest.mark.parametrize(
    ("prof", "multiplier", "expected"),
    [(3, 1, 3), (3, 2, 6), (3, 0.5, 1), (2, 0.5, 1), (3, 0, 0)],
)
def test_proficiency_term(prof: float, multiplier: float, expected: int) -> None:
    assert proficiency_term(prof, multiplier) == expected


class TestSavingThrows:
    """Tests for saving throws."""

    @pytest.fixture
    def fighter(self, make_actor: ActorFactory) -> Callable[..., dict[str, Any]]:
        def _make(**kwargs: Any) -> dict[str, Any]:
            actor = make_actor(abilities={"con": 14, "dex": 12}, attributes={"prof": 3}, **kwargs)
            actor["system"]["abilities"]["con"]["proficient"] = 1
            return actor

        return _make

    def test_proficient_save(self, fighter: Factory, make_context: ContextFactory) -> None:
        save = saving_throw(make_context(fighter()), "con")
        assert save.value == 5
        assert save.proficient == 1
        assert save.label == "Constitution"
        assert not save.augmented

    def test_global_save_bonus_effect(
        self,
        fighter: Factory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = fighter(effects=[make_effect(make_change("system.bonuses.abilities.save", 1))])
        save = saving_throw(make_context(actor), "con")
        assert save.value == 6
        assert save.augmented

    def test_unproficient_save(self, fighter: Factory, make_context: ContextFactory) -> None:
        assert saving_throw(make_context(fighter()), "dex").value == 1

    def test_snapshot_bonus_formulas(self, fighter: Factory, make_context: ContextFactory) -> None:
        actor = fighter(bonuses={"abilities": {"save": "+1"}})
        actor["system"]["abilities"]["con"]["bonuses"] = {"save": "2"}
        assert saving_throw(make_context(actor), "con").value == 8

    def test_proficiency_granted_by_effect(
        self,
        fighter: Factory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = fighter(effects=[make_effect(make_change("system.abilities.dex.proficient", 1, 5))])
        save = saving_throw(make_context(actor), "dex")
        assert save.value == 4
        assert save.augmented

    def test_every_ability(self, fighter: Factory, make_context: ContextFactory) -> None:
        assert list(saving_throws(make_context(fighter()))) == ["str", "dex", "con", "int", "wis", "cha"]

    def test_exhaustion_three_disadvantages_saves(self, fighter: Factory, make_context: ContextFactory) -> None:
        actor = fighter()
        actor["system"]["attributes"]["exhaustion"] = 3
        assert saving_throw(make_context(actor), "con").roll_mode is RollMode.DISADVANTAGE

    def test_restrained_only_affects_dex(
        self,
        fighter: Factory,
        make_context: ContextFactory,
        make_effect: Factory,
    ) -> None:
        ctx = make_context(fighter(effects=[make_effect(name="Restrained")]))
        assert saving_throw(ctx, "dex").roll_mode is RollMode.DISADVANTAGE
        assert saving_throw(ctx, "con").roll_mode is RollMode.NORMAL


class TestSkills:
    """Tests for skill checks and passive scores."""

    def test_proficient_skill_and_passive(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"wis": 14}, attributes={"prof": 2}, skills={"prc": {"value": 1}})
        result = skill_check(make_context(actor), "prc")
        assert result.value == 4
        assert result.passive == 14
        assert result.ability == "wis"
        assert result.label == "Perception"

    def test_expertise_and_half_proficiency(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(
            abilities={"dex": 16, "int": 10},
            attributes={"prof": 3},
            skills={"ste": {"value": 2}, "arc": {"value": 0.5}},
        )
        ctx = make_context(actor)
        assert skill_check(ctx, "ste").value == 9
        assert skill_check(ctx, "arc").value == 1

    def test_declared_ability_overrides_default(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"str": 8, "dex": 16}, attributes={"prof": 2}, skills={"ath": {"ability": "dex"}})
        result = skill_check(make_context(actor), "ath")
        assert result.ability == "dex"
        assert result.value == 3

    def test_bonus_sources_stack(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"wis": 10},
            attributes={"prof": 2},
            skills={"prc": {"value": 0, "bonuses": {"check": "1", "passive": "2"}}},
            bonuses={"abilities": {"check": "1"}},
            effects=[
                make_effect(
                    make_change("system.bonuses.abilities.skill", 1),
                    make_change("system.abilities.wis.bonuses.check", 1),
                )
            ],
        )
        result = skill_check(make_context(actor), "prc")
        assert result.value == 4
        assert result.passive == 16
        assert result.augmented

    def test_advantage_raises_passive(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"wis": 14},
            attributes={"prof": 2},
            skills={"prc": {"value": 1}},
            effects=[make_effect(_flag(make_change, "flags.midi-qol.advantage.skill.prc"))],
        )
        result = skill_check(make_context(actor), "prc")
        assert result.roll_mode is RollMode.ADVANTAGE
        assert result.passive == 19

    def test_roll_mode_change_lowers_passive(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"dex": 10},
            attributes={"prof": 2},
            effects=[make_effect(make_change("system.skills.ste.roll.mode", -1))],
        )
        ctx = make_context(actor)
        stealth = skill_check(ctx, "ste")
        assert stealth.roll_mode is RollMode.DISADVANTAGE
        assert stealth.passive == 5
        assert skill_check(ctx, "prc").roll_mode is RollMode.NORMAL

    def test_extra_snapshot_skills_follow_standard_ones(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(
            abilities={"int": 14},
            attributes={"prof": 2},
            skills={"lor": {"ability": "int", "label": "Lore", "value": 1}},
        )
        result = skills(make_context(actor))
        assert list(result)[-1] == "lor"
        assert list(result)[0] == "acr"
        assert result["lor"].label == "Lore"
        assert result["lor"].value == 4


class TestRollMode:
    """Tests for roll-mode resolution."""

    def test_poisoned_affects_checks_not_saves(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
    ) -> None:
        ctx = make_context(make_actor(effects=[make_effect(statuses=("poisoned",))]))
        assert roll_mode(ctx, CheckKind.CHECK, ability="str") is RollMode.DISADVANTAGE
        assert roll_mode(ctx, CheckKind.SKILL, ability="dex", skill="ste") is RollMode.DISADVANTAGE
        assert roll_mode(ctx, CheckKind.INITIATIVE, ability="dex") is RollMode.DISADVANTAGE
        assert roll_mode(ctx, CheckKind.SAVE, ability="str") is RollMode.NORMAL

    def test_advantage_and_disadvantage_cancel(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            effects=[
                make_effect(_flag(make_change, "flags.midi-qol.advantage.all")),
                make_effect(statuses=("poisoned",)),
            ]
        )
        ctx = make_context(actor)
        assert roll_mode(ctx, CheckKind.CHECK, ability="wis") is RollMode.NORMAL
        assert roll_mode(ctx, CheckKind.SAVE, ability="wis") is RollMode.ADVANTAGE

    def test_sources_do_not_stack(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            effects=[
                make_effect(
                    _flag(make_change, "flags.midi-qol.advantage.all"),
                    _flag(make_change, "flags.midi-qol.advantage.ability.save.all"),
                    make_change("system.abilities.wis.save.roll.mode", 1),
                )
            ]
        )
        ctx = make_context(actor)
        assert roll_mode(ctx, CheckKind.SAVE, ability="wis") is RollMode.ADVANTAGE

    def test_ability_check_flag_reaches_skills_and_initiative(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(effects=[make_effect(_flag(make_change, "flags.midi-qol.advantage.ability.check.dex"))])
        ctx = make_context(actor)
        assert roll_mode(ctx, CheckKind.SKILL, ability="dex", skill="ste") is RollMode.ADVANTAGE
        assert roll_mode(ctx, CheckKind.INITIATIVE, ability="dex") is RollMode.ADVANTAGE
        assert roll_mode(ctx, CheckKind.SKILL, ability="wis", skill="prc") is RollMode.NORMAL
        assert roll_mode(ctx, CheckKind.SAVE, ability="dex") is RollMode.NORMAL

    def test_false_flag_ignored(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(effects=[make_effect(make_change("flags.midi-qol.advantage.all", "false", 5))])
        assert roll_mode(make_context(actor), CheckKind.CHECK, ability="str") is RollMode.NORMAL

    def test_snapshot_mode_is_the_base(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        ctx = make_context(make_actor())
        assert roll_mode(ctx, CheckKind.SAVE, ability="str", snapshot_mode=-1) is RollMode.DISADVANTAGE


class TestInitiative:
    """Tests for initiative."""

    def test_dex_plus_bonus(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"dex": 14}, attributes={"init": {"bonus": "1"}})
        result = initiative(make_context(actor))
        assert result.value == 3
        assert result.ability == "dex"
        assert result.augmented

    def test_declared_ability(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"dex": 10, "wis": 16}, attributes={"init": {"ability": "wis"}})
        result = initiative(make_context(actor))
        assert result.value == 3
        assert result.ability == "wis"

    def test_unknown_ability_falls_back_to_dex(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"dex": 14}, attributes={"init": {"ability": "luck"}})
        result = initiative(make_context(actor))
        assert result.ability == "dex"
        assert result.value == 2
        assert not result.augmented

    def test_effects(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"dex": 14},
            effects=[
                make_effect(
                    make_change("system.attributes.init.bonus", 2),
                    _flag(make_change, "flags.dnd5e.initiativeAdv"),
                )
            ],
        )
        result = initiative(make_context(actor))
        assert result.value == 4
        assert result.roll_mode is RollMode.ADVANTAGE
