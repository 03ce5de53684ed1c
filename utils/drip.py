"""Drip-feed scheduling.

A drip-enabled collection keeps most of its verses queued (inactive) and
unlocks `drip_rate` of them per elapsed drip period, walking `verse_order`
with `drip_cursor`. Everything here is pure: functions take a snapshot plus
an explicit `today` and return plans that the caller persists.

Plans always list verse activations before the collection patch, so a run
that dies halfway leaves verses active but the cursor behind; the next run
repeats the same window and heals anything below the cursor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

from models.collection import ALL_WEEKDAYS, Collection, DripPeriod, DripSettings
from models.verse import Verse
from utils.clock import js_weekday

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeekdaySchedule:
    """Drip on selected weekdays (0 = Sunday)."""

    days: FrozenSet[int]

    def periods_elapsed(self, last_checked: Optional[date], today: date) -> int:
        if last_checked is None:
            return 1 if js_weekday(today) in self.days else 0
        return count_drip_days(last_checked, today, self.days)


@dataclass(frozen=True)
class IntervalSchedule:
    """Legacy fixed-length periods; at least one period per new calendar day."""

    length_days: int

    def periods_elapsed(self, last_checked: Optional[date], today: date) -> int:
        if last_checked is None:
            return 1
        return max(1, days_between(last_checked, today) // self.length_days)


DripSchedule = Union[WeekdaySchedule, IntervalSchedule]


@dataclass(frozen=True)
class DripUpdate:
    collection_id: int
    activate: Tuple[int, ...] = ()
    collection_patch: Dict[str, Any] = field(default_factory=dict)
    periods_elapsed: int = 0


@dataclass(frozen=True)
class CatchUp:
    activate: Tuple[int, ...] = ()
    collection_patches: Dict[int, Dict[str, Any]] = field(default_factory=dict)

    @property
    def empty(self) -> bool:
        return not self.activate and not self.collection_patches


def days_between(start: date, end: date) -> int:
    return (end - start).days


def count_drip_days(after: date, up_to: date, drip_days) -> int:
    """Count days in (after, up_to] whose weekday is a drip day."""
    count = 0
    day = after + timedelta(days=1)
    while day <= up_to:
        if js_weekday(day) in drip_days:
            count += 1
        day += timedelta(days=1)
    return count


def normalize_schedule(collection: Collection) -> Optional[DripSchedule]:
    """Schedule for a collection, or None when drip is disabled."""
    if not collection.drip_enabled:
        return None
    if collection.drip_days:
        return WeekdaySchedule(frozenset(collection.drip_days))
    if collection.drip_period == DripPeriod.WEEK:
        return IntervalSchedule(7)
    return IntervalSchedule(1)


def legacy_drip_days(collection: Collection) -> List[int]:
    """drip_days equivalent used when saving settings of a legacy collection."""
    if collection.drip_days:
        return list(collection.drip_days)
    if collection.drip_period == DripPeriod.WEEK:
        return [1]  # weekly collections drip on Mondays
    return list(ALL_WEEKDAYS)


def _member(verse_id: int, collection: Collection, verses_by_id: Mapping[int, Verse]) -> Optional[Verse]:
    verse = verses_by_id.get(verse_id)
    if verse is None or collection.id not in verse.collection_ids:
        return None
    return verse


def is_fresh(collection: Collection) -> bool:
    return not collection.drip_cursor and not collection.verse_order


def plan_drip(
    collection: Collection,
    verses_by_id: Mapping[int, Verse],
    today: date,
    already_active: FrozenSet[int] = frozenset(),
) -> Optional[DripUpdate]:
    """Calendar-based unlock for one collection; None when nothing to do."""
    schedule = normalize_schedule(collection)
    if schedule is None:
        return None
    if collection.drip_last_checked == today:
        return None

    order = collection.verse_order
    cursor = min(collection.drip_cursor or 0, len(order))
    elapsed = schedule.periods_elapsed(collection.drip_last_checked, today)
    end_index = min(cursor + collection.drip_rate * elapsed, len(order))

    activate: List[int] = []
    for position, verse_id in enumerate(order[:end_index]):
        verse = _member(verse_id, collection, verses_by_id)
        if verse is None or verse.active or verse.id in already_active or verse.id in activate:
            continue
        if position < cursor:
            logger.info("Healing verse %s below drip cursor of collection %s", verse.id, collection.id)
        activate.append(verse.id)

    return DripUpdate(
        collection_id=collection.id,
        activate=tuple(activate),
        collection_patch={"drip_cursor": end_index, "drip_last_checked": today},
        periods_elapsed=elapsed,
    )


def plan_library_drip(
    collections: Sequence[Collection],
    verses: Sequence[Verse],
    today: date,
) -> List[DripUpdate]:
    verses_by_id = {verse.id: verse for verse in verses}
    updates: List[DripUpdate] = []
    activated: set = set()
    for collection in collections:
        update = plan_drip(collection, verses_by_id, today, frozenset(activated))
        if update is None:
            continue
        activated.update(update.activate)
        if update.activate:
            logger.info(
                "Drip unlocked %d verse(s) in collection %s (%d period(s) elapsed)",
                len(update.activate),
                collection.id,
                update.periods_elapsed,
            )
        updates.append(update)
    return updates


def first_drip_collection(collections: Sequence[Collection]) -> Optional[Collection]:
    for collection in collections:
        if collection.drip_enabled:
            return collection
    return None


def initial_activation(collections: Sequence[Collection], count: int) -> List[bool]:
    """Active flag for each of `count` verses about to be appended to `collections`.

    The first drip-enabled collection decides. A fresh one activates its first
    drip_rate verses; an existing one activates only positions still below its
    cursor.
    """
    drip = first_drip_collection(collections)
    if drip is None:
        return [True] * count
    if is_fresh(drip):
        active_count = min(drip.drip_rate, count)
    else:
        active_count = max(0, (drip.drip_cursor or 0) - len(drip.verse_order))
    return [index < active_count for index in range(count)]


def plan_append(collection: Collection, new_ids: Sequence[int], today: date) -> Dict[str, Any]:
    """Collection patch for appending verses; seeds the cursor of a fresh drip collection."""
    added = [verse_id for verse_id in new_ids if verse_id not in collection.verse_order]
    patch: Dict[str, Any] = {"verse_order": collection.verse_order + added}
    if collection.drip_enabled and is_fresh(collection) and added:
        patch["drip_cursor"] = min(collection.drip_rate, len(added))
        patch["drip_last_checked"] = today
    return patch


def plan_catch_up(
    verse: Verse,
    collections: Sequence[Collection],
    verses_by_id: Mapping[int, Verse],
) -> CatchUp:
    """Unlock a queued verse that was reviewed directly.

    The verse itself becomes active, and every owning drip collection also
    unlocks its next queued verse and moves its cursor forward by one.
    """
    if verse.active:
        return CatchUp()
    activate: List[int] = [verse.id]
    patches: Dict[int, Dict[str, Any]] = {}
    for collection in collections:
        if collection.id not in verse.collection_ids or not collection.drip_enabled:
            continue
        order = collection.verse_order
        cursor = min(collection.drip_cursor or 0, len(order))
        if cursor >= len(order):
            continue
        for verse_id in order[cursor:]:
            candidate = _member(verse_id, collection, verses_by_id)
            if candidate is None or candidate.id == verse.id:
                continue
            if not candidate.active and candidate.id not in activate:
                activate.append(candidate.id)
            break
        patches[collection.id] = {"drip_cursor": cursor + 1}
        logger.info("Catch-up in collection %s: cursor %d -> %d", collection.id, cursor, cursor + 1)
    return CatchUp(activate=tuple(activate), collection_patches=patches)


def plan_drip_settings(
    collection: Collection,
    settings: DripSettings,
    verses_by_id: Mapping[int, Verse],
    other_collections: Sequence[Collection] = (),
) -> Tuple[Dict[str, Any], List[int]]:
    """Collection patch and verses to activate for a drip settings change."""
    if settings.enabled:
        patch: Dict[str, Any] = {"drip_rate": settings.rate, "drip_days": settings.days}
        if collection.drip_cursor is None:
            patch["drip_cursor"] = 0
        return patch, []

    # Disabled collections are never deleted from, only zeroed.
    patch = {"drip_rate": 0}
    still_dripping = {c.id for c in other_collections if c.drip_enabled and c.id != collection.id}
    activate = []
    for verse_id in collection.verse_order:
        verse = _member(verse_id, collection, verses_by_id)
        if verse is None or verse.active:
            continue
        if still_dripping.intersection(verse.collection_ids):
            continue
        activate.append(verse.id)
    return patch, activate


def moved_active(verse: Verse, collection_ids: Sequence[int], collections_by_id: Mapping[int, Collection]) -> bool:
    """Active flag for a verse whose collections are replaced by `collection_ids`.

    A drip collection the verse already belonged to keeps deciding. Otherwise
    the first drip collection it joins decides, as for a newly added verse.
    """
    kept = [collections_by_id[cid] for cid in collection_ids if cid in verse.collection_ids]
    if first_drip_collection(kept) is not None:
        return verse.active
    joined = [collections_by_id[cid] for cid in collection_ids if cid not in verse.collection_ids]
    if first_drip_collection(joined) is not None:
        return initial_activation(joined, 1)[0]
    return True
