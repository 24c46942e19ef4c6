"""Tests for hit points and hit dice."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from character_vault.engine.context import CharacterContext
from character_vault.engine.vitals import class_hit_die, estimate_max_hp, hit_dice, hit_points


ActorFactory = Callable[..., dict[str, Any]]
ContextFactory = Callable[[dict[str, Any]], CharacterContext]
Factory = Callable[..., dict[str, Any]]


class TestHitPoints:
    """Tests for hit_points."""

    def test_max_twenty_plus_five_gives_effective_max_twenty_five(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
    ) -> None:
        """Max 20 with 5 extra gives an effective maximum of 25; value defaults to max.

        The extra 5 is read as ``tempmax``: only the temporary maximum extends
        the effective maximum, while ``temp`` hit points are tracked separately.
        """
        hp = hit_points(make_context(make_actor(attributes={"hp": {"max": 20, "tempmax": 5}})))
        assert hp.max == 20
        assert hp.effective_max == 25
        assert hp.value == 20
        assert not hp.augmented

    def test_temp_does_not_extend_effective_max(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        hp = hit_points(make_context(make_actor(attributes={"hp": {"max": 20, "temp": 5}})))
        assert hp.effective_max == 20
        assert hp.temp == 5
        assert hp.value == 20

    def test_value_override_clamps_to_effective_max(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            attributes={"hp": {"max": 20, "tempmax": 5}},
            effects=[make_effect(make_change("system.attributes.hp.value", 30, 5))],
        )
        hp = hit_points(make_context(actor))
        assert hp.value == 25
        assert hp.augmented

    def test_negative_value_clamps_to_zero(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        hp = hit_points(make_context(make_actor(attributes={"hp": {"max": 20, "value": -4, "temp": -2}})))
        assert hp.value == 0
        assert hp.temp == 0

    def test_max_bonuses(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_class: Factory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            attributes={"hp": {"max": 20, "value": 20}},
            items=[make_class("Fighter", 3, hit_die="d10")],
            effects=[
                make_effect(
                    make_change("system.attributes.hp.bonuses.overall", 5),
                    make_change("system.attributes.hp.bonuses.level", 1),
                )
            ],
        )
        hp = hit_points(make_context(actor))
        assert hp.max == 28
        assert hp.value == 20
        assert hp.augmented

    def test_max_never_negative(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            attributes={"hp": {"max": 20, "tempmax": -5}},
            effects=[make_effect(make_change("system.attributes.hp.max", -30))],
        )
        hp = hit_points(make_context(actor))
        assert hp.max == 0
        assert hp.effective_max == 0
        assert hp.value == 0
        assert hp.tempmax == -5

    def test_temp_effect(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            attributes={"hp": {"max": 10, "temp": 3}},
            effects=[make_effect(make_change("system.attributes.hp.temp", 8, 4))],
        )
        assert hit_points(make_context(actor)).temp == 8

    def test_missing_max_is_estimated(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_class: Factory,
    ) -> None:
        actor = make_actor(abilities={"con": 14}, items=[make_class("Fighter", 3, hit_die="d10")])
        hp = hit_points(make_context(actor))
        assert hp.max == 28
        assert hp.value == 28


class TestEstimate:
    """Tests for the class-level hit point estimate."""

    def test_first_level_full_die_then_average(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_class: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"con": 12},
            items=[make_class("Wizard", 1, hit_die="d6"), make_class("Fighter", 2, hit_die="d10")],
        )
        assert estimate_max_hp(make_context(actor)) == 7 + 7 + 7

    def test_minimum_one_per_level(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_class: Factory,
    ) -> None:
        actor = make_actor(abilities={"con": 1}, items=[make_class("Wizard", 2, hit_die="d6")])
        assert estimate_max_hp(make_context(actor)) == 2

    def test_no_classes(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        assert estimate_max_hp(make_context(make_actor())) == 0

    def test_class_levels_capped(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_class: Factory,
    ) -> None:
        """A corrupt level count is read as at most 20 levels."""
        actor = make_actor(abilities={"con": 10}, items=[make_class("Fighter", 10**9, hit_die="d10")])
        assert estimate_max_hp(make_context(actor)) == 10 + 19 * 6


class TestHitDice:
    """Tests for hit dice."""

    def test_class_hit_die(self) -> None:
        assert class_hit_die({"system": {"hitDice": "d10"}}) == 10
        assert class_hit_die({"system": {"hd": {"denomination": "d12"}}}) == 12
        assert class_hit_die({"system": {}}) == 8

    def test_totals_and_clamping(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_class: Factory,
    ) -> None:
        actor = make_actor(
            items=[
                make_class("Fighter", 3, hit_die="d10", spent=1),
                make_class("Wizard", 2, hit_die="d6", spent=5),
            ]
        )
        dice = hit_dice(make_context(actor))
        assert dice.total == 5
        assert dice.used == 3
        assert dice.unused == 2
        assert dice.by_die == {"d10": 2, "d6": 0}

    def test_modern_spent_field(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        barbarian = {
            "name": "Barbarian",
            "type": "class",
            "system": {"levels": 4, "hd": {"denomination": "d12", "spent": 1}},
        }
        dice = hit_dice(make_context(make_actor(items=[barbarian])))
        assert dice.by_die == {"d12": 3}
        assert dice.unused == 3
