"""Active-effect collection and change decoding.

Effects live on the actor and on its owned items. ``collect_active_effects``
flattens them into one ordered list: actor effects first, then item effects
in item order. That order is the tie-break for everything downstream, since
changes are folded left to right.

Each change's dotted key is decoded exactly once into a ``DecodedChange``
carrying a ``StatTarget`` plus its qualifier (ability, skill, movement
category, spell level...). Calculators select changes by target instead of
matching key strings themselves.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from character_vault.core.constants import ABILITY_CODES, MOVEMENT_TYPES, SENSE_TYPES
from character_vault.core.logging import get_logger
from character_vault.engine.accessors import bool_from_loose, list_at, try_number
from character_vault.models.enums import ChangeMode, CheckKind, StatTarget


logger = get_logger(__name__)


# =============================================================================
# Effect records
# =============================================================================


@dataclass(frozen=True)
class ActiveEffect:
    """An enabled effect that applies to the character.

    Attributes:
        name: Effect label.
        origin: ``"actor"`` or the name of the item carrying the effect.
        changes: Raw change mappings in their original order.
        statuses: Status ids the effect applies (``poisoned``...).
    """

    name: str
    origin: str
    changes: tuple[Mapping[str, Any], ...] = ()
    statuses: frozenset[str] = field(default_factory=frozenset)


def _effect_record(raw: Mapping[str, Any], origin: str) -> ActiveEffect:
    name = raw.get("name") or raw.get("label") or ""
    statuses = raw.get("statuses")
    return ActiveEffect(
        name=name if isinstance(name, str) else "",
        origin=origin,
        changes=tuple(c for c in list_at(raw, "changes") if isinstance(c, Mapping)),
        statuses=frozenset(
            s.lower() for s in (statuses if isinstance(statuses, list) else []) if isinstance(s, str)
        ),
    )


def _is_disabled(raw: Mapping[str, Any]) -> bool:
    return bool_from_loose(raw.get("disabled"))


def collect_active_effects(actor: Mapping[str, Any]) -> list[ActiveEffect]:
    """Gather every enabled effect that applies to the actor.

    Actor effects are included unless disabled. Item effects are included
    unless disabled or explicitly marked ``transfer: false`` (item-local).

    Args:
        actor: The actor document.

    Returns:
        Effects in application order: actor effects in array order, then
        each item's effects in item order.
    """
    collected: list[ActiveEffect] = []
    for raw in list_at(actor, "effects"):
        if isinstance(raw, Mapping) and not _is_disabled(raw):
            collected.append(_effect_record(raw, "actor"))

    for item in list_at(actor, "items"):
        if not isinstance(item, Mapping):
            continue
        origin = item.get("name") if isinstance(item.get("name"), str) else "item"
        for raw in list_at(item, "effects"):
            if not isinstance(raw, Mapping) or _is_disabled(raw):
                continue
            if raw.get("transfer") is False:
                continue
            collected.append(_effect_record(raw, origin))
    return collected


# =============================================================================
# Change decoding
# =============================================================================


@dataclass(frozen=True)
class DecodedChange:
    """A change whose key has been mapped onto a stat target.

    Attributes:
        target: The stat the change modifies.
        mode: How the value folds into the running total.
        value: Raw value (number, numeric string, formula or flag).
        key: Normalised key the change was decoded from.
        effect: Name of the effect carrying the change.
        qualifier: Ability, skill, movement/sense category or spell level;
            None when the change targets every member (``all``).
        scope: Roll family for roll-mode and advantage-flag changes.
        sign: +1 for advantage flags, -1 for disadvantage flags, else 0.
    """

    target: StatTarget
    mode: ChangeMode
    value: Any
    key: str
    effect: str = ""
    qualifier: str | None = None
    scope: CheckKind | None = None
    sign: int = 0


_ABL = "|".join(ABILITY_CODES)
_MOVE = "|".join(MOVEMENT_TYPES)
_SENSE = "|".join(SENSE_TYPES)
_SKL = r"[a-z]{3}"
_SIGN = r"(?P<sign>advantage|disadvantage)"

# (pattern, target, fixed scope)
_KEY_TABLE: tuple[tuple[re.Pattern[str], StatTarget, CheckKind | None], ...] = tuple(
    (re.compile(pattern), target, scope)
    for pattern, target, scope in (
        (r"system\.attributes\.ac\.flat", StatTarget.AC_FLAT, None),
        (r"system\.attributes\.ac\.value", StatTarget.AC_VALUE, None),
        (r"system\.attributes\.ac\.bonus", StatTarget.AC_BONUS, None),
        (r"system\.attributes\.ac\.formula", StatTarget.AC_FORMULA, None),
        (r"system\.attributes\.ac\.min", StatTarget.AC_MIN, None),
        (r"system\.attributes\.hp\.value", StatTarget.HP_VALUE, None),
        (r"system\.attributes\.hp\.max", StatTarget.HP_MAX, None),
        (r"system\.attributes\.hp\.temp", StatTarget.HP_TEMP, None),
        (r"system\.attributes\.hp\.tempmax", StatTarget.HP_TEMPMAX, None),
        (r"system\.attributes\.hp\.bonuses\.overall", StatTarget.HP_BONUS_OVERALL, None),
        (r"system\.attributes\.hp\.bonuses\.level", StatTarget.HP_BONUS_LEVEL, None),
        (r"system\.attributes\.movement\.all", StatTarget.MOVEMENT_ALL, None),
        (rf"system\.attributes\.movement\.(?P<q>{_MOVE})", StatTarget.MOVEMENT, None),
        (rf"system\.attributes\.senses\.(?P<q>{_SENSE})", StatTarget.SENSE, None),
        (rf"system\.abilities\.(?P<q>{_ABL})\.value", StatTarget.ABILITY_SCORE, None),
        (rf"system\.abilities\.(?P<q>{_ABL})\.mod", StatTarget.ABILITY_MOD, None),
        (rf"system\.abilities\.(?P<q>{_ABL})\.proficient", StatTarget.SAVE_PROFICIENCY, None),
        (rf"system\.abilities\.(?P<q>{_ABL})\.bonuses\.check", StatTarget.ABILITY_CHECK_BONUS, None),
        (rf"system\.abilities\.(?P<q>{_ABL})\.bonuses\.save", StatTarget.ABILITY_SAVE_BONUS, None),
        (rf"system\.abilities\.(?P<q>{_ABL})\.check\.roll\.mode", StatTarget.ROLL_MODE, CheckKind.CHECK),
        (rf"system\.abilities\.(?P<q>{_ABL})\.save\.roll\.mode", StatTarget.ROLL_MODE, CheckKind.SAVE),
        (r"system\.attributes\.prof", StatTarget.PROFICIENCY, None),
        (r"system\.bonuses\.abilities\.check", StatTarget.GLOBAL_CHECK_BONUS, None),
        (r"system\.bonuses\.abilities\.save", StatTarget.GLOBAL_SAVE_BONUS, None),
        (r"system\.bonuses\.abilities\.skill", StatTarget.GLOBAL_SKILL_BONUS, None),
        (rf"system\.skills\.(?P<q>{_SKL})\.value", StatTarget.SKILL_PROFICIENCY, None),
        (rf"system\.skills\.(?P<q>{_SKL})\.bonuses\.check", StatTarget.SKILL_BONUS, None),
        (rf"system\.skills\.(?P<q>{_SKL})\.bonuses\.passive", StatTarget.SKILL_PASSIVE, None),
        (rf"system\.skills\.(?P<q>{_SKL})\.roll\.mode", StatTarget.ROLL_MODE, CheckKind.SKILL),
        (r"system\.attributes\.init\.bonus", StatTarget.INIT_BONUS, None),
        (r"system\.attributes\.init\.roll\.mode", StatTarget.ROLL_MODE, CheckKind.INITIATIVE),
        (r"system\.bonuses\.spell\.dc", StatTarget.SPELL_DC_BONUS, None),
        (r"system\.attributes\.spelldc", StatTarget.SPELL_DC, None),
        (r"system\.spells\.spell(?P<q>[1-9])\.override", StatTarget.SPELL_SLOT_OVERRIDE, None),
        (r"system\.spells\.pact\.override", StatTarget.PACT_SLOT_OVERRIDE, None),
        (rf"flags\.[^.]+\.{_SIGN}\.all", StatTarget.ADVANTAGE_FLAG, None),
        (
            rf"flags\.[^.]+\.{_SIGN}\.ability\.(?P<scope>check|save)\.(?P<q>all|{_ABL})",
            StatTarget.ADVANTAGE_FLAG,
            None,
        ),
        (rf"flags\.[^.]+\.{_SIGN}\.skill\.(?P<q>all|{_SKL})", StatTarget.ADVANTAGE_FLAG, CheckKind.SKILL),
        (r"flags\.dnd5e\.initiativeAdv", StatTarget.ADVANTAGE_FLAG, CheckKind.INITIATIVE),
    )
)


def normalise_key(key: str) -> str:
    """Bring a change key into ``system.``/``flags.`` form.

    Legacy ``data.`` prefixes become ``system.``; bare paths gain ``system.``.
    """
    key = key.strip()
    if key.startswith("data."):
        return "system." + key[len("data."):]
    if key.startswith(("system.", "flags.")):
        return key
    return "system." + key


def decode_change(raw: Mapping[str, Any], effect: str = "") -> DecodedChange | None:
    """Decode one raw change.

    Args:
        raw: ``{key, mode, value}`` mapping from a snapshot.
        effect: Name of the effect carrying it.

    Returns:
        The decoded change, or None for unrecognised keys or modes.
    """
    key = raw.get("key")
    if not isinstance(key, str) or not key.strip():
        return None
    mode_number = try_number(raw.get("mode"))
    try:
        mode = ChangeMode(int(mode_number)) if mode_number is not None else None
    except ValueError:
        mode = None
    if mode is None:
        logger.debug("Ignoring change with unknown mode", key=key, mode=raw.get("mode"))
        return None

    normalised = normalise_key(key)
    for pattern, target, fixed_scope in _KEY_TABLE:
        match = pattern.fullmatch(normalised)
        if match is None:
            continue
        groups = match.groupdict()
        qualifier = groups.get("q")
        scope = fixed_scope
        if groups.get("scope"):
            scope = CheckKind(groups["scope"])
        sign = 0
        if target is StatTarget.ADVANTAGE_FLAG:
            sign = -1 if groups.get("sign") == "disadvantage" else 1
        return DecodedChange(
            target=target,
            mode=mode,
            value=raw.get("value"),
            key=normalised,
            effect=effect,
            qualifier=None if qualifier in (None, "all") else qualifier,
            scope=scope,
            sign=sign,
        )
    return None


def decode_effects(effects: Iterable[ActiveEffect]) -> list[DecodedChange]:
    """Decode every change of every effect, preserving application order."""
    decoded: list[DecodedChange] = []
    for effect in effects:
        for raw in effect.changes:
            change = decode_change(raw, effect.name)
            if change is not None:
                decoded.append(change)
    return decoded


__all__ = [
    "ActiveEffect",
    "DecodedChange",
    "collect_active_effects",
    "decode_change",
    "decode_effects",
    "normalise_key",
]
