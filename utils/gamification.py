from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from math import isqrt
from typing import Dict, Optional

from models.profile import DailyReviewEntry, LevelUpState, Profile

logger = logging.getLogger(__name__)

LEVEL_XP_UNIT = 100
BASE_XP_BY_GRADE = {1: 10, 2: 10, 3: 15, 4: 20}


@dataclass(frozen=True)
class LedgerResult:
    profile: Profile
    xp_earned: int
    leveled_up: bool


def base_xp(grade: int) -> int:
    try:
        return BASE_XP_BY_GRADE[int(grade)]
    except (KeyError, ValueError, TypeError):
        raise ValueError(f"Grade must be 1-4, got {grade!r}")


def xp_for_level(level: int) -> int:
    """XP required to reach a level: 100 * n * (n + 1) / 2."""
    return LEVEL_XP_UNIT * level * (level + 1) // 2


def level_from_xp(xp: int) -> int:
    """Largest n with 100 * n * (n + 1) / 2 <= xp."""
    if xp <= 0:
        return 0
    # 50n^2 + 50n <= xp  <=>  n <= (-1 + sqrt(1 + 8 * xp / 100)) / 2
    level = (isqrt(1 + 8 * xp // LEVEL_XP_UNIT) - 1) // 2
    while xp_for_level(level + 1) <= xp:
        level += 1
    while level > 0 and xp_for_level(level) > xp:
        level -= 1
    return level


def level_progress(xp: int, level: Optional[int] = None) -> Dict[str, float]:
    level = level_from_xp(xp) if level is None else level
    current = xp_for_level(level)
    needed = xp_for_level(level + 1) - current
    into = xp - current
    percent = min(into / needed * 100, 100.0) if needed > 0 else 0.0
    return {
        "level": level,
        "xp_into_level": into,
        "xp_for_next_level": needed,
        "percent": round(percent, 1),
    }


def diminished_xp(grade: int, entry: Optional[DailyReviewEntry]) -> int:
    """XP for a review given today's log entry for the same verse.

    First review today earns full XP. A better grade than today's best earns
    only the difference to what the best grade was worth; anything else is
    halved once per earlier review today.
    """
    full = base_xp(grade)
    if entry is None or entry.review_count == 0:
        return full
    if grade > entry.best_grade:
        return max(0, full - base_xp(entry.best_grade))
    return full // (2 ** entry.review_count)


def next_streak(streak: int, last_review_date: Optional[date], today: date) -> int:
    if last_review_date == today:
        return streak
    if last_review_date == today - timedelta(days=1):
        return streak + 1
    return 1


def current_daily_log(profile: Profile, today: date) -> Dict[int, DailyReviewEntry]:
    """Today's review log; a log from an earlier day counts as empty."""
    if profile.last_review_date != today:
        return {}
    return dict(profile.daily_review_log)


def with_daily_reset(profile: Profile, today: date) -> Profile:
    if profile.last_review_date == today or not profile.daily_review_log:
        return profile
    return profile.model_copy(update={"daily_review_log": {}})


def record_review(profile: Profile, verse_id: int, grade: int, today: date) -> LedgerResult:
    """Apply one graded review to the profile."""
    daily_log = current_daily_log(profile, today)
    entry = daily_log.get(verse_id)
    earned = diminished_xp(grade, entry)

    new_xp = profile.xp + earned
    old_level = profile.level
    new_level = level_from_xp(new_xp)

    daily_log[verse_id] = DailyReviewEntry(
        review_count=(entry.review_count if entry else 0) + 1,
        best_grade=max(entry.best_grade if entry else 0, int(grade)),
        xp_earned=(entry.xp_earned if entry else 0) + earned,
    )

    leveled_up = new_level > old_level
    level_up = LevelUpState.PENDING if leveled_up else profile.level_up
    if leveled_up:
        logger.info("Account %s reached level %d", profile.account_id, new_level)

    updated = profile.model_copy(
        update={
            "xp": new_xp,
            "level": new_level,
            "streak": next_streak(profile.streak, profile.last_review_date, today),
            "last_review_date": today,
            "total_reviewed": profile.total_reviewed + 1,
            "daily_review_log": daily_log,
            "level_up": level_up,
        }
    )
    return LedgerResult(profile=updated, xp_earned=earned, leveled_up=leveled_up)


def acknowledge_level_up(profile: Profile) -> Profile:
    return profile.model_copy(update={"level_up": LevelUpState.ACKNOWLEDGED})
