import random
from datetime import datetime, timedelta, timezone

from models.collection import Collection
from models.review import ReviewMode, ReviewScope
from models.verse import LearningPhase, Verse
from utils.review_queue import QueueRequest, QueueStatus, build_queue, shuffled
from utils.scheduler import SM2Scheduler

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
SCHEDULER = SM2Scheduler()


def _verse(verse_id, due_in_days=1, active=True, collection_ids=(1,), starred=False,
           phase=LearningPhase.LEARNING):
    return Verse(
        id=verse_id,
        reference=f"Romans 8:{verse_id}",
        text="For I am persuaded",
        collection_ids=list(collection_ids),
        scheduler_state={"due": (NOW + timedelta(days=due_in_days)).isoformat()},
        active=active,
        learning_phase=phase,
        starred=starred,
        created_at=NOW - timedelta(days=100 - verse_id),
    )


def _collection(verse_order, collection_id=1):
    return Collection(id=collection_id, name="Romans 8", verse_order=verse_order, created_at=NOW)


def _build(verses, request, collections=(), seed=7):
    return build_queue(verses, list(collections), request, SCHEDULER, NOW, rng=random.Random(seed))


def test_due_mode_falls_back_to_whole_pool():
    verses = [_verse(i) for i in range(1, 6)]
    result = _build(verses, QueueRequest(mode=ReviewMode.DUE))
    assert result.status == QueueStatus.READY
    assert sorted(result.verse_ids) == [1, 2, 3, 4, 5]


def test_due_mode_only_returns_due_verses():
    verses = [_verse(1, due_in_days=-1), _verse(2), _verse(3, due_in_days=0)]
    result = _build(verses, QueueRequest(mode=ReviewMode.DUE))
    assert sorted(result.verse_ids) == [1, 3]


def test_inactive_verses_are_excluded():
    verses = [_verse(1, active=False), _verse(2)]
    result = _build(verses, QueueRequest(mode=ReviewMode.RANDOM))
    assert result.verse_ids == [2]


def test_empty_pool_is_nothing_eligible():
    verses = [_verse(1, active=False)]
    result = _build(verses, QueueRequest())
    assert result.status == QueueStatus.NOTHING_ELIGIBLE
    assert result.entries == []


def test_starred_scope():
    verses = [_verse(1, starred=True), _verse(2), _verse(3, starred=True)]
    result = _build(verses, QueueRequest(scope=ReviewScope.STARRED, mode=ReviewMode.RANDOM))
    assert sorted(result.verse_ids) == [1, 3]


def test_collection_scope():
    verses = [_verse(1), _verse(2, collection_ids=(2,)), _verse(3, collection_ids=(1, 2))]
    request = QueueRequest(scope=ReviewScope.COLLECTION, mode=ReviewMode.RANDOM, collection_id=2)
    assert sorted(_build(verses, request).verse_ids) == [2, 3]


def test_sequential_follows_verse_order():
    verses = [_verse(i) for i in range(1, 5)]
    request = QueueRequest(scope=ReviewScope.COLLECTION, mode=ReviewMode.SEQUENTIAL, collection_id=1)
    result = _build(verses, request, [_collection([3, 1, 99, 4, 2])])
    assert result.verse_ids == [3, 1, 4, 2]
    assert all(entry.auto_grade for entry in result.entries)


def test_sequential_falls_back_to_creation_order():
    verses = [_verse(3), _verse(1), _verse(2)]
    request = QueueRequest(scope=ReviewScope.COLLECTION, mode=ReviewMode.SEQUENTIAL, collection_id=1)
    assert _build(verses, request, [_collection([])]).verse_ids == [1, 2, 3]
    library = QueueRequest(mode=ReviewMode.SEQUENTIAL)
    assert _build(verses, library, [_collection([2, 3, 1])]).verse_ids == [1, 2, 3]


def test_pinned_verse_is_reviewed_even_when_queued():
    verses = [_verse(1), _verse(2, active=False)]
    result = _build(verses, QueueRequest(verse_id=2))
    assert result.verse_ids == [2]
    assert _build(verses, QueueRequest(verse_id=9)).status == QueueStatus.NOTHING_ELIGIBLE


def test_continue_from_slices_collection_order():
    verses = [_verse(1), _verse(2), _verse(3, active=False), _verse(4, active=False), _verse(5)]
    request = QueueRequest(scope=ReviewScope.COLLECTION, collection_id=1, start_verse_id=3)
    result = _build(verses, request, [_collection([1, 2, 3, 4, 5])])
    assert result.mode == ReviewMode.SEQUENTIAL
    assert result.verse_ids == [3, 5]


def test_continue_from_missing_verse_is_nothing_eligible():
    request = QueueRequest(scope=ReviewScope.COLLECTION, collection_id=1, start_verse_id=42)
    result = _build([_verse(1)], request, [_collection([1])])
    assert result.status == QueueStatus.NOTHING_ELIGIBLE


def test_beginner_verses_are_flagged_for_auto_grade():
    verses = [_verse(1, phase=LearningPhase.BEGINNER), _verse(2)]
    result = _build(verses, QueueRequest(mode=ReviewMode.RANDOM))
    flags = {entry.verse_id: entry.auto_grade for entry in result.entries}
    assert flags == {1: True, 2: False}


def test_shuffle_is_a_permutation_and_seeded():
    verses = [_verse(i) for i in range(1, 11)]
    first = [v.id for v in shuffled(verses, random.Random(3))]
    second = [v.id for v in shuffled(verses, random.Random(3))]
    assert first == second
    assert sorted(first) == list(range(1, 11))
    assert [v.id for v in verses] == list(range(1, 11))
