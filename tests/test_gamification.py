from datetime import date, datetime, timezone

import pytest

from models.profile import DailyReviewEntry, LevelUpState, Profile
from utils.gamification import (
    acknowledge_level_up,
    base_xp,
    current_daily_log,
    level_from_xp,
    level_progress,
    record_review,
    with_daily_reset,
    xp_for_level,
)

DAY = date(2026, 10, 19)


def _profile(**kwargs) -> Profile:
    fields = {"account_id": 1, "created_at": datetime(2026, 10, 1, tzinfo=timezone.utc)}
    fields.update(kwargs)
    return Profile(**fields)


def test_base_xp_table():
    assert [base_xp(g) for g in (1, 2, 3, 4)] == [10, 10, 15, 20]
    with pytest.raises(ValueError):
        base_xp(5)


def test_same_day_diminishing_returns():
    profile = _profile()
    earned = []
    for grade in (3, 2, 4):
        result = record_review(profile, 42, grade, DAY)
        earned.append(result.xp_earned)
        profile = result.profile
    assert earned == [15, 5, 5]
    assert profile.xp == 25
    entry = profile.daily_review_log[42]
    assert entry == DailyReviewEntry(review_count=3, best_grade=4, xp_earned=25)


def test_repeated_reviews_halve_each_time():
    profile = _profile()
    earned = []
    for _ in range(4):
        result = record_review(profile, 1, 4, DAY)
        earned.append(result.xp_earned)
        profile = result.profile
    assert earned == [20, 10, 5, 2]


def test_other_verses_are_not_diminished():
    profile = record_review(_profile(), 1, 3, DAY).profile
    assert record_review(profile, 2, 3, DAY).xp_earned == 15


def test_level_boundaries():
    assert level_from_xp(0) == 0
    assert level_from_xp(99) == 0
    assert level_from_xp(100) == 1
    assert level_from_xp(299) == 1
    assert level_from_xp(300) == 2
    for level in range(1, 60):
        assert level_from_xp(xp_for_level(level)) == level
        assert level_from_xp(xp_for_level(level) - 1) == level - 1


def test_level_progress():
    progress = level_progress(150)
    assert progress["level"] == 1
    assert progress["xp_into_level"] == 50
    assert progress["xp_for_next_level"] == 200
    assert progress["percent"] == 25.0


def test_streak_counts_consecutive_days():
    profile = record_review(_profile(), 1, 3, DAY).profile
    assert profile.streak == 1
    profile = record_review(profile, 1, 3, DAY).profile
    assert profile.streak == 1
    profile = record_review(profile, 1, 3, date(2026, 10, 20)).profile
    assert profile.streak == 2


def test_streak_resets_after_missed_day():
    profile = record_review(_profile(), 1, 3, DAY).profile
    profile = record_review(profile, 1, 3, date(2026, 10, 21)).profile
    assert profile.streak == 1


def test_stale_daily_log_is_ignored():
    stale = _profile(
        xp=15,
        last_review_date=date(2026, 10, 18),
        daily_review_log={7: DailyReviewEntry(review_count=3, best_grade=4, xp_earned=35)},
    )
    assert current_daily_log(stale, DAY) == {}
    assert with_daily_reset(stale, DAY).daily_review_log == {}
    result = record_review(stale, 7, 3, DAY)
    assert result.xp_earned == 15
    assert result.profile.daily_review_log[7].review_count == 1


def test_level_up_is_pending_until_acknowledged():
    result = record_review(_profile(xp=90), 1, 3, DAY)
    assert result.leveled_up
    assert result.profile.level == 1
    assert result.profile.level_up == LevelUpState.PENDING

    again = record_review(result.profile, 2, 1, DAY)
    assert not again.leveled_up
    assert again.profile.level_up == LevelUpState.PENDING

    acknowledged = acknowledge_level_up(again.profile)
    assert acknowledged.level_up == LevelUpState.ACKNOWLEDGED
    assert acknowledged.level == 1
