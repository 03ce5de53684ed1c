from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Protocol, Tuple

SchedulerState = Dict[str, Any]

# Grade 1..4 (Again, Hard, Good, Easy) to SM-2 quality 0..5
GRADE_TO_QUALITY = {1: 1, 2: 3, 3: 4, 4: 5}


class CardScheduler(Protocol):
    """Spaced-repetition algorithm consumed as a black box."""

    def new_card(self, now: datetime) -> SchedulerState:
        ...

    def is_due(self, state: SchedulerState, now: datetime) -> bool:
        ...

    def schedule(self, state: SchedulerState, grade: int, now: datetime) -> SchedulerState:
        ...


def map_grade_to_quality(grade: int) -> int:
    """Map a 1-4 grade to SM-2 quality score (0-5)."""
    if grade not in GRADE_TO_QUALITY:
        raise ValueError(f"Grade must be 1-4, got {grade!r}")
    return GRADE_TO_QUALITY[grade]


def update_sm2(
    card_interval: int,
    card_ef: float,
    quality: int,
    streak: int,
) -> Tuple[int, float, int]:
    """Update SM-2 parameters; returns (interval_days, ease_factor, streak)."""
    if quality < 3:
        new_streak = 0
        new_interval = 1
    else:
        new_streak = streak + 1
        if card_interval == 1:
            new_interval = 6 if quality >= 4 else 1
        else:
            new_interval = max(1, round(card_interval * card_ef))
    new_ef = max(1.3, card_ef + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)))
    return new_interval, new_ef, new_streak


def _parse_due(value: Optional[str], fallback: datetime) -> datetime:
    if not value:
        return fallback
    try:
        due = datetime.fromisoformat(value)
    except ValueError:
        return fallback
    if due.tzinfo is None and fallback.tzinfo is not None:
        due = due.replace(tzinfo=fallback.tzinfo)
    return due


class SM2Scheduler:
    """SM-2 card scheduler; state is a plain JSON-serializable dict."""

    def __init__(self, initial_ease: float = 2.5):
        self.initial_ease = initial_ease

    def new_card(self, now: datetime) -> SchedulerState:
        return {
            "interval_days": 1,
            "ease_factor": self.initial_ease,
            "streak": 0,
            "reps": 0,
            "lapses": 0,
            "due": now.isoformat(),
            "last_review": None,
        }

    def is_due(self, state: SchedulerState, now: datetime) -> bool:
        return _parse_due(state.get("due"), now) <= now

    def schedule(self, state: SchedulerState, grade: int, now: datetime) -> SchedulerState:
        quality = map_grade_to_quality(grade)
        current = {**self.new_card(now), **(state or {})}
        new_interval, new_ef, new_streak = update_sm2(
            int(current["interval_days"]),
            float(current["ease_factor"]),
            quality,
            int(current["streak"]),
        )
        return {
            **current,
            "interval_days": new_interval,
            "ease_factor": new_ef,
            "streak": new_streak,
            "reps": int(current["reps"]) + 1,
            "lapses": int(current["lapses"]) + (1 if quality < 3 else 0),
            "due": (now + timedelta(days=new_interval)).isoformat(),
            "last_review": now.isoformat(),
        }


def days_until_due(scheduler_state: SchedulerState, now: datetime) -> int:
    """Days until the card is due; negative means overdue."""
    due = _parse_due(scheduler_state.get("due"), now)
    return round((due - now).total_seconds() / 86400)


def get_scheduler(config: Optional[Dict[str, Any]] = None) -> CardScheduler:
    scheduler_cfg = (config or {}).get("scheduler", {})
    algorithm = scheduler_cfg.get("algorithm", "sm2")
    if algorithm != "sm2":
        raise ValueError(f"Unknown scheduler algorithm: {algorithm}")
    return SM2Scheduler(initial_ease=scheduler_cfg.get("initial_ease", 2.5))
