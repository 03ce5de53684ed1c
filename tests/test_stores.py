import asyncio
from datetime import date, datetime, timezone

import pytest

from db import database
from db.stores import AccountStore, DuplicateRecord, RecordNotFound, StoreError, Stores, clean_patch
from models.profile import DailyReviewEntry, LevelUpState
from models.verse import LearningPhase

NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def stores(tmp_path, monkeypatch):
    config_dir = tmp_path / ".versecoach"
    config_dir.mkdir()
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "versecoach.db")
    database.init_db()
    with database.get_conn() as conn:
        account = asyncio.run(AccountStore(conn).create("Ada"))
        yield Stores(conn, account.id)


def test_clean_patch_drops_absent_values():
    assert clean_patch({"drip_rate": 0, "drip_days": None, "active": False}) == {
        "drip_rate": 0,
        "active": False,
    }


def test_verse_round_trip_and_patch(stores):
    verse = asyncio.run(stores.verses.create(
        reference="John 3:16",
        text="For God so loved the world",
        collection_ids=[4, 2],
        scheduler_state={"due": NOW.isoformat()},
        active=False,
        learning_phase=LearningPhase.BEGINNER,
        created_at=NOW,
    ))
    assert verse.collection_ids == [4, 2]
    assert verse.active is False

    asyncio.run(stores.verses.patch(verse.id, {"active": True, "learning_phase": None}))
    stored = asyncio.run(stores.verses.get(verse.id))
    assert stored.active is True
    assert stored.learning_phase == LearningPhase.BEGINNER


def test_patch_rejects_unknown_fields(stores):
    collection = asyncio.run(stores.collections.create(name="Psalms", verse_order=[], created_at=NOW))
    with pytest.raises(ValueError):
        asyncio.run(stores.collections.patch(collection.id, {"colour": "blue"}))


def test_missing_records_raise(stores):
    with pytest.raises(RecordNotFound):
        asyncio.run(stores.verses.get(999))
    with pytest.raises(RecordNotFound):
        asyncio.run(stores.collections.patch(999, {"name": "Nope"}))


def test_failed_write_raises_store_error(stores):
    collection = asyncio.run(stores.collections.create(name="Psalms", verse_order=[], created_at=NOW))
    with pytest.raises(StoreError):
        asyncio.run(stores.collections.patch(collection.id, {"drip_period": "fortnight"}))
    assert asyncio.run(stores.collections.get(collection.id)).drip_period is None


def test_legacy_rows_read_as_mastered(stores):
    stores.verses.conn.execute(
        """
        INSERT INTO verses (account_id, reference, text, learning_phase, created_at)
        VALUES (?, ?, ?, NULL, ?)
        """,
        (stores.account_id, "Genesis 1:1", "In the beginning", NOW.isoformat()),
    )
    stores.verses.conn.commit()
    [verse] = asyncio.run(stores.verses.get_all())
    assert verse.learning_phase == LearningPhase.MASTERED
    assert verse.active is True


def test_collection_drip_fields(stores):
    collection = asyncio.run(stores.collections.create(name="Romans", verse_order=[], created_at=NOW))
    asyncio.run(stores.collections.patch(collection.id, {
        "verse_order": [3, 1, 2],
        "drip_rate": 2,
        "drip_days": [1, 5],
        "drip_cursor": 2,
        "drip_last_checked": date(2026, 10, 19),
    }))
    stored = asyncio.run(stores.collections.get(collection.id))
    assert stored.verse_order == [3, 1, 2]
    assert stored.drip_days == [1, 5]
    assert stored.drip_last_checked == date(2026, 10, 19)
    assert stored.drip_enabled


def test_profile_save_round_trip(stores):
    profile = asyncio.run(stores.profile.get_or_create(NOW))
    assert profile.xp == 0
    assert profile.level_up == LevelUpState.ACKNOWLEDGED

    updated = profile.model_copy(update={
        "xp": 115,
        "level": 1,
        "streak": 3,
        "last_review_date": date(2026, 10, 19),
        "daily_review_log": {7: DailyReviewEntry(review_count=2, best_grade=3, xp_earned=22)},
        "level_up": LevelUpState.PENDING,
    })
    asyncio.run(stores.profile.save(updated))

    stored = asyncio.run(stores.profile.get_or_create(NOW))
    assert stored.xp == 115
    assert stored.level_up == LevelUpState.PENDING
    assert stored.daily_review_log[7].best_grade == 3


def test_review_log_counts_by_grade(stores):
    for grade in (3, 3, 1):
        asyncio.run(stores.reviews.append(verse_id=1, grade=grade, auto_graded=False, created_at=NOW))
    assert asyncio.run(stores.reviews.count_by_grade()) == {1: 1, 3: 2}


def test_duplicate_account_name(stores):
    with database.get_conn() as conn:
        with pytest.raises(DuplicateRecord):
            asyncio.run(AccountStore(conn).create("Ada"))


def test_review_log_keeps_one_row_per_session_position(stores):
    first = asyncio.run(stores.reviews.append(
        verse_id=1, session_id=9, session_position=0, grade=3, auto_graded=True, created_at=NOW,
    ))
    again = asyncio.run(stores.reviews.append(
        verse_id=1, session_id=9, session_position=0, grade=3, auto_graded=True, created_at=NOW,
    ))
    assert again == first
    assert asyncio.run(stores.reviews.count_by_grade()) == {3: 1}
