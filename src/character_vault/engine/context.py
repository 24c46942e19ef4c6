"""Per-character computation context.

A ``CharacterContext`` wraps one loaded actor document for one render pass.
Everything expensive to derive is computed lazily and memoized on the
instance: the active-effect list, the decoded changes, the effective
abilities/proficiency bundle and the check/save bonus bundle. A reloaded
snapshot gets a new context, so cached values never outlive the snapshot
they were computed from, even when two snapshots describe the same
character.

The actor document is never mutated.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from functools import cached_property
from typing import TYPE_CHECKING, Any

from character_vault.core.config import EngineSettings, get_settings
from character_vault.core.constants import ABILITY_CODES
from character_vault.core.logging import get_logger
from character_vault.engine.accessors import (
    bool_from_loose,
    list_at,
    mapping_at,
    num_at,
    str_at,
    try_number,
)
from character_vault.engine.effects import (
    ActiveEffect,
    DecodedChange,
    collect_active_effects,
    decode_effects,
)
from character_vault.engine.formula import FormulaEvaluator
from character_vault.models.enums import CheckKind, Condition, ItemType, StatTarget
from character_vault.models.snapshot import actor_from_payload


if TYPE_CHECKING:
    from character_vault.engine.abilities import AbilityBundle
    from character_vault.engine.checks import BonusBundle


logger = get_logger(__name__)

_IDENTIFIER_CHARS = re.compile(r"[^a-z0-9]+")


def class_identifier(item: Mapping[str, Any]) -> str:
    """Identifier of a class item (``system.identifier`` or its slugged name)."""
    declared = str_at(item, "system.identifier")
    if declared:
        return declared.lower()
    name = item.get("name") if isinstance(item.get("name"), str) else ""
    return _IDENTIFIER_CHARS.sub("-", name.lower()).strip("-")


class CharacterContext:
    """Lazily derived state for one character snapshot.

    Example:
        >>> ctx = CharacterContext({"system": {"abilities": {"dex": {"value": 16}}}})
        >>> ctx.abilities.mod("dex")
        3
    """

    def __init__(
        self,
        actor: Mapping[str, Any] | None,
        *,
        settings: EngineSettings | None = None,
    ) -> None:
        """Initialize the context.

        Args:
            actor: The actor document (not the export envelope).
            settings: Engine settings; the application settings when omitted.
        """
        self.actor: Mapping[str, Any] = actor if isinstance(actor, Mapping) else {}
        self.settings = settings if settings is not None else get_settings().engine
        self.evaluator = FormulaEvaluator(
            zero_result_is_failure=self.settings.zero_result_is_failure,
        )

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        *,
        settings: EngineSettings | None = None,
    ) -> CharacterContext:
        """Build a context from an export payload of any shape."""
        return cls(actor_from_payload(payload), settings=settings)

    # -------------------------------------------------------------------------
    # Raw document views
    # -------------------------------------------------------------------------

    @cached_property
    def system(self) -> dict[str, Any]:
        """The actor's ``system`` data block."""
        return mapping_at(self.actor, "system")

    @cached_property
    def items(self) -> list[Mapping[str, Any]]:
        """Owned items, in snapshot order."""
        return [item for item in list_at(self.actor, "items") if isinstance(item, Mapping)]

    def items_of_type(self, item_type: ItemType) -> list[Mapping[str, Any]]:
        """Owned items of one type, in snapshot order."""
        return [item for item in self.items if item.get("type") == item_type.value]

    @property
    def name(self) -> str:
        value = self.actor.get("name")
        return value if isinstance(value, str) and value else "Unnamed"

    # -------------------------------------------------------------------------
    # Effects
    # -------------------------------------------------------------------------

    @cached_property
    def effects(self) -> list[ActiveEffect]:
        """Enabled effects in application order."""
        return collect_active_effects(self.actor)

    @cached_property
    def changes(self) -> list[DecodedChange]:
        """Every recognised change, decoded once, in application order."""
        return decode_effects(self.effects)

    def changes_for(
        self,
        target: StatTarget,
        qualifier: str | None = None,
        *,
        include_all: bool = False,
    ) -> list[DecodedChange]:
        """Select changes for one target.

        Args:
            target: The stat target.
            qualifier: Only changes for this qualifier (ability, skill...);
                None selects every change of the target.
            include_all: Also keep changes whose qualifier is ``all`` (None).

        Returns:
            Matching changes in application order.
        """
        selected = []
        for change in self.changes:
            if change.target is not target:
                continue
            if qualifier is not None and change.qualifier != qualifier:
                if not (include_all and change.qualifier is None):
                    continue
            selected.append(change)
        return selected

    # -------------------------------------------------------------------------
    # Levels and conditions
    # -------------------------------------------------------------------------

    @cached_property
    def class_levels(self) -> dict[str, int]:
        """Levels per class identifier, summed over class items."""
        levels: dict[str, int] = {}
        for item in self.items_of_type(ItemType.CLASS):
            count = max(0, int(num_at(item, "system.levels", 0) or 0))
            identifier = class_identifier(item)
            levels[identifier] = levels.get(identifier, 0) + count
        return levels

    @cached_property
    def level(self) -> int:
        """Character level: class levels, else ``details.level``, clamped to the minimum."""
        total = sum(self.class_levels.values())
        if total <= 0:
            total = int(num_at(self.system, "details.level", 0) or 0)
        return max(self.settings.minimum_level, total)

    @cached_property
    def conditions(self) -> dict[Condition, int]:
        """Active conditions and their level (1 except for exhaustion)."""
        found: dict[Condition, int] = {}
        names = {condition.value: condition for condition in Condition}
        for effect in self.effects:
            for status in effect.statuses:
                if status in names:
                    found[names[status]] = max(found.get(names[status], 0), 1)
            label = effect.name.strip().lower()
            if label in names:
                found[names[label]] = max(found.get(names[label], 0), 1)
        exhaustion = num_at(self.system, "attributes.exhaustion", 0) or 0
        if exhaustion > 0:
            found[Condition.EXHAUSTION] = int(exhaustion)
        return found

    # -------------------------------------------------------------------------
    # Memoized bundles
    # -------------------------------------------------------------------------

    @cached_property
    def abilities(self) -> AbilityBundle:
        """Effective ability scores, modifiers and proficiency bonus."""
        from character_vault.engine.abilities import compute_abilities

        return compute_abilities(self)

    @cached_property
    def bonuses(self) -> BonusBundle:
        """Global and per-ability check/save bonuses."""
        from character_vault.engine.checks import compute_bonuses

        return compute_bonuses(self)

    # -------------------------------------------------------------------------
    # Formula support
    # -------------------------------------------------------------------------

    def _roll_data(self, scores: Mapping[str, float], mods: Mapping[str, float], prof: float) -> dict[str, float]:
        data: dict[str, float] = {
            "prof": prof,
            "attributes.prof": prof,
            "details.level": float(self.level),
        }
        for code in ABILITY_CODES:
            data[f"abilities.{code}.value"] = scores.get(code, 0.0)
            data[f"abilities.{code}.mod"] = mods.get(code, 0.0)
        for identifier, levels in self.class_levels.items():
            data[f"classes.{identifier}.levels"] = float(levels)
        for field in ("max", "value"):
            number = num_at(self.system, f"attributes.hp.{field}")
            if number is not None:
                data[f"attributes.hp.{field}"] = number
        return data

    @cached_property
    def base_roll_data(self) -> dict[str, float]:
        """Formula tokens built from the snapshot before any effects."""
        from character_vault.engine.abilities import base_proficiency, raw_ability

        scores: dict[str, float] = {}
        mods: dict[str, float] = {}
        for code in ABILITY_CODES:
            scores[code], mods[code] = raw_ability(self, code)
        return self._roll_data(scores, mods, base_proficiency(self))

    @cached_property
    def roll_data(self) -> dict[str, float]:
        """Formula tokens built from the effective abilities."""
        bundle = self.abilities
        scores = {code: bundle[code].score for code in ABILITY_CODES}
        mods = {code: bundle[code].modifier for code in ABILITY_CODES}
        return self._roll_data(scores, mods, bundle.proficiency)

    def evaluate(self, formula: Any, extra: Mapping[str, float] | None = None) -> float | None:
        """Evaluate a snapshot formula against the effective roll data.

        Args:
            formula: Formula text or number.
            extra: Additional tokens layered over the roll data.

        Returns:
            The value, or None when evaluation failed.
        """
        data = self.roll_data if not extra else {**self.roll_data, **extra}
        return self.evaluator.evaluate(formula, data)

    def evaluate_bonus(self, formula: Any, *, field: str) -> float:
        """Evaluate a snapshot bonus field, treating absence or failure as 0."""
        if formula is None or (isinstance(formula, str) and not formula.strip()):
            return 0.0
        value = self.evaluate(formula)
        if value is None:
            logger.debug("Bonus formula fallback to 0", character=self.name, field=field, formula=formula)
            return 0.0
        return value

    def resolver(self, data: Mapping[str, float] | None = None) -> Callable[[DecodedChange], float | None]:
        """Build a change-value resolver bound to a token context.

        Args:
            data: Token context; the effective roll data when omitted.

        Returns:
            A callable turning a change's raw value into a number or None.
        """

        def resolve(change: DecodedChange) -> float | None:
            value = change.value
            if isinstance(value, bool):
                return 1.0 if value else 0.0
            number = try_number(value)
            if number is not None:
                return number
            return self.evaluator.evaluate(value, data if data is not None else self.roll_data)

        return resolve

    def flag_truthy(self, change: DecodedChange) -> bool:
        """Whether an advantage-flag change is switched on."""
        return bool_from_loose(change.value)

    def roll_mode_changes(self, scope: CheckKind) -> list[DecodedChange]:
        """Roll-mode changes for one roll family."""
        return [c for c in self.changes_for(StatTarget.ROLL_MODE) if c.scope is scope]


__all__ = ["CharacterContext", "class_identifier"]
