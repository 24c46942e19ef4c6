"""Tests for armour class resolution."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from character_vault.engine.armor import armor_class, equipped_armor
from character_vault.engine.context import CharacterContext


ActorFactory = Callable[..., dict[str, Any]]
ContextFactory = Callable[[dict[str, Any]], CharacterContext]
Factory = Callable[..., dict[str, Any]]


class TestDefaultCalculation:
    """Tests for armour + shields + capped DEX."""

    def test_equipment_progression(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_armor: Factory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        """AC grows 13 -> 16 -> 18 -> 19 as armour, shield and a bonus are added."""
        items: list[dict[str, Any]] = []
        effects: list[dict[str, Any]] = []

        def ac() -> Any:
            return armor_class(make_context(make_actor(abilities={"dex": 16}, items=items, effects=effects)))

        unarmored = ac()
        assert unarmored.value == 13
        assert unarmored.source == "default"
        assert not unarmored.augmented

        items.append(make_armor(14, dex=2))
        assert ac().value == 16

        items.append(make_armor(2, "shield"))
        assert ac().value == 18

        effects.append(make_effect(make_change("system.attributes.ac.bonus", 1)))
        result = ac()
        assert result.value == 19
        assert result.augmented

    def test_heavy_armor_ignores_dex(self, make_actor: ActorFactory, make_context: ContextFactory, make_armor: Factory) -> None:
        actor = make_actor(abilities={"dex": 16}, items=[make_armor(16, "heavy")])
        assert armor_class(make_context(actor)).value == 16

    def test_negative_dex_applies_under_cap(self, make_actor: ActorFactory, make_context: ContextFactory, make_armor: Factory) -> None:
        actor = make_actor(abilities={"dex": 8}, items=[make_armor(14, dex=2)])
        assert armor_class(make_context(actor)).value == 13

    def test_unequipped_armor_ignored(self, make_actor: ActorFactory, make_context: ContextFactory, make_armor: Factory) -> None:
        actor = make_actor(abilities={"dex": 12}, items=[make_armor(18, "heavy", equipped=False)])
        assert armor_class(make_context(actor)).value == 11

    def test_magical_bonus_is_augmentation(self, make_actor: ActorFactory, make_context: ContextFactory, make_armor: Factory) -> None:
        actor = make_actor(abilities={"dex": 10}, items=[make_armor(12, "light", magical_bonus=1)])
        result = armor_class(make_context(actor))
        assert result.value == 13
        assert result.augmented

    def test_best_armor_wins_and_ties_keep_order(self, make_actor: ActorFactory, make_context: ContextFactory, make_armor: Factory) -> None:
        actor = make_actor(
            items=[
                make_armor(13, "light", name="Studded"),
                make_armor(14, name="First Scale"),
                make_armor(14, name="Second Scale"),
            ]
        )
        piece = equipped_armor(make_context(actor))
        assert piece is not None
        assert piece.name == "First Scale"


class TestFormulas:
    """Tests for explicit and preset formulas."""

    def test_mage_armor_preset(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"dex": 16}, attributes={"ac": {"calc": "mage"}})
        result = armor_class(make_context(actor))
        assert result.value == 16
        assert result.source == "formula"
        assert result.augmented

    def test_unarmored_monk_preset(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"dex": 16, "wis": 14}, attributes={"ac": {"calc": "unarmoredMonk"}})
        assert armor_class(make_context(actor)).value == 15

    def test_custom_formula_adds_shield_implicitly(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_armor: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"con": 14},
            attributes={"ac": {"calc": "custom", "formula": "12 + @abilities.con.mod"}},
            items=[make_armor(2, "shield")],
        )
        assert armor_class(make_context(actor)).value == 16

    def test_formula_referencing_shield_not_doubled(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_armor: Factory,
    ) -> None:
        actor = make_actor(
            attributes={"ac": {"calc": "custom", "formula": "10 + @attributes.ac.shield"}},
            items=[make_armor(2, "shield")],
        )
        assert armor_class(make_context(actor)).value == 12

    def test_formula_ignored_for_other_calcs(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"dex": 14}, attributes={"ac": {"calc": "default", "formula": "25"}})
        result = armor_class(make_context(actor))
        assert result.value == 12
        assert result.source == "default"

    def test_failed_formula_falls_back_to_armor_plus_dex(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_armor: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"dex": 14},
            attributes={"ac": {"calc": "custom", "formula": "@attributes.ac.armor + @abilities.dex.mod + oops(1)"}},
            items=[make_armor(13, "light")],
        )
        result = armor_class(make_context(actor))
        assert result.value == 15
        assert result.source == "formula"

    def test_failed_formula_without_fallback_uses_default(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"dex": 14}, attributes={"ac": {"calc": "custom", "formula": "window.x"}})
        result = armor_class(make_context(actor))
        assert result.value == 12
        assert result.source == "default"

    def test_effect_formula(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"dex": 12},
            effects=[make_effect(make_change("system.attributes.ac.formula", "13 + @abilities.dex.mod", 5))],
        )
        result = armor_class(make_context(actor))
        assert result.value == 14
        assert result.augmented


class TestOverrides:
    """Tests for effect overrides, snapshot values and the minimum."""

    def test_flat_override(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"dex": 16},
            effects=[make_effect(make_change("system.attributes.ac.flat", 17, 5))],
        )
        result = armor_class(make_context(actor))
        assert result.value == 17
        assert result.source == "flat_override"
        assert result.augmented

    def test_value_override_plus_bonus(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            effects=[
                make_effect(
                    make_change("system.attributes.ac.value", 15, 5),
                    make_change("system.attributes.ac.bonus", 1),
                )
            ],
        )
        result = armor_class(make_context(actor))
        assert result.value == 16
        assert result.source == "value_override"

    def test_add_mode_value_counts_as_bonus(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"dex": 14},
            effects=[make_effect(make_change("system.attributes.ac.value", 2))],
        )
        result = armor_class(make_context(actor))
        assert result.value == 14
        assert result.source == "default"

    def test_snapshot_value(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"dex": 16}, attributes={"ac": {"value": 17}})
        result = armor_class(make_context(actor))
        assert result.value == 17
        assert result.source == "snapshot_value"

    def test_snapshot_flat_calc(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(attributes={"ac": {"calc": "natural", "flat": 15}})
        assert armor_class(make_context(actor)).value == 15

    def test_minimum(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            abilities={"dex": 16},
            effects=[make_effect(make_change("system.attributes.ac.min", 16, 4))],
        )
        assert armor_class(make_context(actor)).value == 16

    def test_snapshot_bonus_formula(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        actor = make_actor(abilities={"dex": 10, "wis": 14}, attributes={"ac": {"bonus": "@abilities.wis.mod"}})
        result = armor_class(make_context(actor))
        assert result.value == 12
        assert result.augmented

    def test_oversized_bonus_formula_is_ignored(self, make_actor: ActorFactory, make_context: ContextFactory) -> None:
        """A bonus too large for a float falls back to 0 instead of raising."""
        actor = make_actor(abilities={"dex": 16}, attributes={"ac": {"bonus": "10**400"}})
        result = armor_class(make_context(actor))
        assert result.value == 13
        assert result.source == "default"

    def test_overflowing_bonus_effects_keep_last_finite_value(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            effects=[
                make_effect(
                    make_change("system.attributes.ac.bonus", 1e308),
                    make_change("system.attributes.ac.bonus", 1e308),
                )
            ],
        )
        assert armor_class(make_context(actor)).value == int(1e308)

    def test_overflowing_total_rounds_to_zero(
        self,
        make_actor: ActorFactory,
        make_context: ContextFactory,
        make_effect: Factory,
        make_change: Factory,
    ) -> None:
        actor = make_actor(
            effects=[
                make_effect(
                    make_change("system.attributes.ac.value", 1e308, 5),
                    make_change("system.attributes.ac.bonus", 1e308),
                )
            ],
        )
        assert armor_class(make_context(actor)).value == 0
