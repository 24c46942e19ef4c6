"""Whole-sheet aggregation, roster summary lines and search corpora.

``compute_sheet`` is the single entry point a renderer needs: it builds one
``CharacterContext`` for the payload and runs every calculator against it.
Snapshots from other game systems get a bare sheet with no derived stats.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from character_vault.core.config import EngineSettings, get_settings
from character_vault.core.logging import get_logger, log_context
from character_vault.engine.abilities import AbilityBundle
from character_vault.engine.accessors import get_path, label_of, list_at, mapping_at, num_at, str_at
from character_vault.engine.armor import ArmorClassResult, armor_class
from character_vault.engine.checks import (
    InitiativeResult,
    SaveResult,
    SkillResult,
    initiative,
    saving_throws,
    skills,
)
from character_vault.engine.context import CharacterContext
from character_vault.engine.movement import Movement, Senses, movement, senses
from character_vault.engine.results import StatValue
from character_vault.engine.spellcasting import (
    SpellDcResult,
    SpellSlots,
    spell_save_dc,
    spell_slots,
    spellcasting_ability,
)
from character_vault.engine.vitals import HitDice, HitPoints, hit_dice, hit_points
from character_vault.models.enums import ItemType
from character_vault.models.roster import ItemCard, RosterMeta
from character_vault.models.snapshot import actor_from_payload, guess_system


logger = get_logger(__name__)

LINE_SEPARATOR = " • "
SUMMARY_SEPARATOR = "  ·  "
GEAR_TYPES = (
    ItemType.WEAPON,
    ItemType.EQUIPMENT,
    ItemType.CONSUMABLE,
    ItemType.TOOL,
    ItemType.LOOT,
    ItemType.BACKPACK,
    ItemType.CONTAINER,
)


def format_signed(value: float) -> str:
    """Signed notation (``+3``, ``-1``, ``+0``)."""
    number = int(value)
    return f"+{number}" if number >= 0 else str(number)


# =============================================================================
# Sheet Records
# =============================================================================


@dataclass(frozen=True)
class SheetStats:
    """Every derived statistic of a dnd5e character."""

    abilities: AbilityBundle
    proficiency: StatValue
    armor_class: ArmorClassResult
    hit_points: HitPoints
    hit_dice: HitDice
    movement: Movement
    senses: Senses
    saves: dict[str, SaveResult]
    skills: dict[str, SkillResult]
    initiative: InitiativeResult
    spell_dc: SpellDcResult | None
    spell_slots: SpellSlots


@dataclass(frozen=True)
class CharacterSheet:
    """Display-ready record of one snapshot.

    Attributes:
        name: Actor name.
        system_id: Game system id.
        meta: Roster summary lines.
        details: Race, background and alignment (when present).
        stats: Derived statistics; None for unsupported systems.
        spells: Spell cards sorted by name.
        features: Feature cards sorted by name.
        inventory: Gear cards sorted by name.
        biography: Biography HTML, as exported.
    """

    name: str
    system_id: str
    meta: RosterMeta
    details: dict[str, str] = field(default_factory=dict)
    stats: SheetStats | None = None
    spells: list[ItemCard] = field(default_factory=list)
    features: list[ItemCard] = field(default_factory=list)
    inventory: list[ItemCard] = field(default_factory=list)
    biography: str = ""

    @property
    def rich(self) -> bool:
        return self.stats is not None


# =============================================================================
# Roster Summary
# =============================================================================


def _is_rich(payload: Any, settings: EngineSettings) -> bool:
    return guess_system(payload) == settings.rich_system_id


def _class_line(ctx: CharacterContext) -> str:
    names = [
        item["name"]
        for item in ctx.items_of_type(ItemType.CLASS)
        if isinstance(item.get("name"), str) and item["name"]
    ]
    label = ", ".join(names) or str_at(ctx.system, "details.class") or "Character"
    level = sum(ctx.class_levels.values()) or int(num_at(ctx.system, "details.level", 0) or 0)
    parts = [label, f"Lv {level}" if level else ""]
    return LINE_SEPARATOR.join(part for part in parts if part)


def _summary_line(ac: int, hp: HitPoints, proficiency: int) -> str:
    return SUMMARY_SEPARATOR.join(
        (f"AC {ac}", f"HP {hp.value}/{hp.max}", f"PB {format_signed(proficiency)}")
    )


def _meta(ctx: CharacterContext, ac: int, hp: HitPoints) -> RosterMeta:
    return RosterMeta(
        line1=_class_line(ctx),
        line2=_summary_line(ac, hp, ctx.abilities.proficiency_bonus),
    )


def _plain_meta(actor: Mapping[str, Any]) -> RosterMeta:
    actor_type = actor.get("type")
    return RosterMeta(
        line1=actor_type if isinstance(actor_type, str) and actor_type else "Actor",
        line2="Snapshot",
    )


def roster_meta(payload: Any, *, settings: EngineSettings | None = None) -> RosterMeta:
    """Summary lines for the roster list.

    Args:
        payload: A parsed snapshot document.
        settings: Engine settings; the application settings when omitted.

    Returns:
        Class/level and AC/HP/PB lines for dnd5e snapshots; actor type and
        ``Snapshot`` otherwise.
    """
    settings = settings or get_settings().engine
    if not _is_rich(payload, settings):
        return _plain_meta(actor_from_payload(payload))
    ctx = CharacterContext.from_payload(payload, settings=settings)
    return _meta(ctx, armor_class(ctx).value, hit_points(ctx))


def search_corpus(payload: Any) -> str:
    """Lower-cased text the roster search matches against.

    Covers the name, class, race and background, every item name, and the
    ability and skill keys with their labels.
    """
    actor = actor_from_payload(payload)
    system = mapping_at(actor, "system")
    items = [item for item in list_at(actor, "items") if isinstance(item, Mapping)]

    bits: list[Any] = [actor.get("name"), get_path(system, "details.class")]
    bits.append(label_of(get_path(system, "details.race"), items))
    bits.append(label_of(get_path(system, "details.background"), items))
    bits.extend(item.get("name") for item in items)
    for group in ("abilities", "skills"):
        for key, entry in mapping_at(system, group).items():
            bits.append(key)
            if isinstance(entry, Mapping):
                bits.append(entry.get("label"))
    return " ".join(bit for bit in bits if isinstance(bit, str) and bit).lower().strip()


# =============================================================================
# Item Cards
# =============================================================================


def _spell_card(item: Mapping[str, Any]) -> ItemCard:
    level = num_at(item, "system.level")
    parts = [
        "" if level is None else ("Cantrip" if level == 0 else f"Level {int(level)}"),
        str_at(item, "system.school"),
        str_at(item, "system.preparation.mode"),
    ]
    return ItemCard(name=_item_name(item), subtitle=LINE_SEPARATOR.join(p for p in parts if p))


def _gear_card(item: Mapping[str, Any]) -> ItemCard:
    quantity = num_at(item, "system.quantity", 1.0) or 0.0
    parts = [f"qty {int(quantity)}"]
    if get_path(item, "system.equipped") is True:
        parts.append("equipped")
    return ItemCard(name=_item_name(item), subtitle=LINE_SEPARATOR.join(parts))


def _item_name(item: Mapping[str, Any]) -> str:
    name = item.get("name")
    return name if isinstance(name, str) and name else "Unnamed"


def _cards(
    items: list[Mapping[str, Any]],
    build: Callable[[Mapping[str, Any]], ItemCard],
) -> list[ItemCard]:
    return sorted((build(item) for item in items), key=lambda card: card.name.lower())


# =============================================================================
# Sheet
# =============================================================================


def compute_stats(ctx: CharacterContext) -> SheetStats:
    """Run every calculator against one context."""
    abilities = ctx.abilities
    return SheetStats(
        abilities=abilities,
        proficiency=StatValue(
            value=abilities.proficiency_bonus,
            augmented=abilities.proficiency_augmented,
        ),
        armor_class=armor_class(ctx),
        hit_points=hit_points(ctx),
        hit_dice=hit_dice(ctx),
        movement=movement(ctx),
        senses=senses(ctx),
        saves=saving_throws(ctx),
        skills=skills(ctx),
        initiative=initiative(ctx),
        spell_dc=spell_save_dc(ctx) if _casts_spells(ctx) else None,
        spell_slots=spell_slots(ctx),
    )


def _casts_spells(ctx: CharacterContext) -> bool:
    return spellcasting_ability(ctx) is not None or num_at(ctx.system, "attributes.spelldc") is not None


def _details(ctx: CharacterContext) -> dict[str, str]:
    details: dict[str, str] = {}
    for key in ("race", "background", "alignment"):
        label = label_of(get_path(ctx.system, f"details.{key}"), ctx.items)
        if label:
            details[key] = label
    return details


def compute_sheet(payload: Any, *, settings: EngineSettings | None = None) -> CharacterSheet:
    """Compute the full character sheet for one snapshot.

    Args:
        payload: A parsed snapshot document of any shape.
        settings: Engine settings; the application settings when omitted.

    Returns:
        The sheet. Never raises for malformed snapshots.

    Example:
        >>> sheet = compute_sheet({"systemId": "dnd5e", "actor": {"name": "Ada"}})
        >>> sheet.stats.armor_class.value
        10
    """
    settings = settings or get_settings().engine
    actor = actor_from_payload(payload)
    system_id = guess_system(payload)
    ctx = CharacterContext(actor, settings=settings)
    with log_context(actor_id=actor.get("_id"), system=system_id):
        return _render(ctx, payload, system_id, settings)


def _render(ctx: CharacterContext, payload: Any, system_id: str, settings: EngineSettings) -> CharacterSheet:
    if not _is_rich(payload, settings):
        logger.debug("Snapshot without derived stats", character=ctx.name, system=system_id)
        return CharacterSheet(name=ctx.name, system_id=system_id, meta=_plain_meta(ctx.actor))

    stats = compute_stats(ctx)
    biography = get_path(ctx.system, "details.biography.value")
    if not isinstance(biography, str):
        biography = str_at(ctx.system, "details.biography")
    return CharacterSheet(
        name=ctx.name,
        system_id=system_id,
        meta=_meta(ctx, stats.armor_class.value, stats.hit_points),
        details=_details(ctx),
        stats=stats,
        spells=_cards(ctx.items_of_type(ItemType.SPELL), _spell_card),
        features=_cards(ctx.items_of_type(ItemType.FEAT), lambda item: ItemCard(name=_item_name(item))),
        inventory=_cards([item for item in ctx.items if item.get("type") in GEAR_TYPES], _gear_card),
        biography=biography,
    )


__all__ = [
    "CharacterSheet",
    "SheetStats",
    "compute_sheet",
    "compute_stats",
    "roster_meta",
    "search_corpus",
    "format_signed",
]
