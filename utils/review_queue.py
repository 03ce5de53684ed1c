from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence

from models.collection import Collection
from models.review import QueueEntry, ReviewMode, ReviewPreferences, ReviewScope
from models.verse import Verse
from utils.learning_phase import skips_self_grading
from utils.scheduler import CardScheduler

logger = logging.getLogger(__name__)


class QueueStatus(str, Enum):
    READY = "ready"
    NOTHING_ELIGIBLE = "nothing_eligible"


@dataclass(frozen=True)
class QueueRequest:
    scope: ReviewScope = ReviewScope.LIBRARY
    mode: ReviewMode = ReviewMode.DUE
    collection_id: Optional[int] = None
    verse_id: Optional[int] = None  # pinned single verse
    start_verse_id: Optional[int] = None  # continue in order from this verse


@dataclass(frozen=True)
class QueueResult:
    status: QueueStatus
    mode: ReviewMode
    entries: List[QueueEntry] = field(default_factory=list)
    preferences: ReviewPreferences = field(default_factory=ReviewPreferences)

    @property
    def verse_ids(self) -> List[int]:
        return [entry.verse_id for entry in self.entries]


def shuffled(items: Sequence[Verse], rng: random.Random) -> List[Verse]:
    """Shuffled copy; the input order is left alone."""
    result = list(items)
    rng.shuffle(result)
    return result


def scope_pool(verses: Sequence[Verse], request: QueueRequest) -> List[Verse]:
    active = [verse for verse in verses if verse.active]
    if request.scope == ReviewScope.STARRED:
        return [verse for verse in active if verse.starred]
    if request.scope == ReviewScope.COLLECTION:
        return [verse for verse in active if request.collection_id in verse.collection_ids]
    return active


def creation_order(verses: Sequence[Verse]) -> List[Verse]:
    return sorted(verses, key=lambda verse: (verse.created_at, verse.id))


def sequential_order(pool: Sequence[Verse], collection: Optional[Collection]) -> List[Verse]:
    """Pool ordered by the collection's verse_order, falling back to creation order."""
    if collection is not None and collection.verse_order:
        by_id = {verse.id: verse for verse in pool}
        ordered = [by_id[verse_id] for verse_id in collection.verse_order if verse_id in by_id]
        if ordered:
            return ordered
    return creation_order(pool)


def _entries(verses: Sequence[Verse], mode: ReviewMode) -> List[QueueEntry]:
    return [
        QueueEntry(
            verse_id=verse.id,
            auto_grade=mode == ReviewMode.SEQUENTIAL or skips_self_grading(verse.learning_phase),
        )
        for verse in verses
    ]


def _find_collection(collections: Sequence[Collection], collection_id: Optional[int]) -> Optional[Collection]:
    for collection in collections:
        if collection.id == collection_id:
            return collection
    return None


def build_queue(
    verses: Sequence[Verse],
    collections: Sequence[Collection],
    request: QueueRequest,
    scheduler: CardScheduler,
    now: datetime,
    rng: Optional[random.Random] = None,
    preferences: Optional[ReviewPreferences] = None,
) -> QueueResult:
    """Ordered verses for one review session.

    An empty result is always NOTHING_ELIGIBLE; running out of verses during
    a session is reported by the session, not here.
    """
    rng = rng or random.Random()
    preferences = preferences or ReviewPreferences()

    if request.verse_id is not None and request.start_verse_id is None:
        pinned = [verse for verse in verses if verse.id == request.verse_id]
        if not pinned:
            return QueueResult(QueueStatus.NOTHING_ELIGIBLE, request.mode, preferences=preferences)
        return QueueResult(QueueStatus.READY, request.mode, _entries(pinned, request.mode), preferences)

    if request.start_verse_id is not None:
        return _continue_from(verses, collections, request, preferences)

    pool = scope_pool(verses, request)
    if not pool:
        logger.debug("No eligible verses for scope %s", request.scope.value)
        return QueueResult(QueueStatus.NOTHING_ELIGIBLE, request.mode, preferences=preferences)

    if request.mode == ReviewMode.DUE:
        due = [verse for verse in pool if scheduler.is_due(verse.scheduler_state, now)]
        ordered = shuffled(due, rng) if due else shuffled(pool, rng)
    elif request.mode == ReviewMode.RANDOM:
        ordered = shuffled(pool, rng)
    else:
        collection = None
        if request.scope == ReviewScope.COLLECTION:
            collection = _find_collection(collections, request.collection_id)
        ordered = sequential_order(pool, collection)

    return QueueResult(QueueStatus.READY, request.mode, _entries(ordered, request.mode), preferences)


def _continue_from(
    verses: Sequence[Verse],
    collections: Sequence[Collection],
    request: QueueRequest,
    preferences: ReviewPreferences,
) -> QueueResult:
    mode = ReviewMode.SEQUENTIAL
    members = [
        verse for verse in verses
        if request.collection_id in verse.collection_ids
        and (verse.active or verse.id == request.start_verse_id)
    ]
    ordered = sequential_order(members, _find_collection(collections, request.collection_id))
    start = next((index for index, verse in enumerate(ordered) if verse.id == request.start_verse_id), None)
    if start is None:
        return QueueResult(QueueStatus.NOTHING_ELIGIBLE, mode, preferences=preferences)
    return QueueResult(QueueStatus.READY, mode, _entries(ordered[start:], mode), preferences)
