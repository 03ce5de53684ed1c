from datetime import datetime, timedelta, timezone

import pytest

from utils.grading import suggest_grade, token_diff
from utils.scheduler import SM2Scheduler, days_until_due, get_scheduler, map_grade_to_quality, update_sm2

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def test_grade_to_quality_mapping():
    assert [map_grade_to_quality(g) for g in (1, 2, 3, 4)] == [1, 3, 4, 5]
    with pytest.raises(ValueError):
        map_grade_to_quality(0)


def test_update_sm2_lapse_resets_interval():
    interval, ef, streak = update_sm2(10, 2.5, 1, 4)
    assert interval == 1
    assert streak == 0
    assert ef >= 1.3


def test_update_sm2_second_success_jumps_to_six_days():
    interval, _, streak = update_sm2(1, 2.5, 4, 1)
    assert interval == 6
    assert streak == 2


def test_new_card_is_due_immediately():
    scheduler = SM2Scheduler()
    state = scheduler.new_card(NOW)
    assert scheduler.is_due(state, NOW)
    assert days_until_due(state, NOW) == 0


def test_schedule_moves_due_date():
    scheduler = SM2Scheduler()
    state = scheduler.schedule(scheduler.new_card(NOW), 3, NOW)
    assert state["reps"] == 1
    assert state["due"] == (NOW + timedelta(days=6)).isoformat()
    assert not scheduler.is_due(state, NOW + timedelta(days=5))
    assert scheduler.is_due(state, NOW + timedelta(days=6))
    failed = scheduler.schedule(state, 1, NOW)
    assert failed["lapses"] == 1
    assert failed["interval_days"] == 1


def test_get_scheduler_rejects_unknown_algorithm():
    assert isinstance(get_scheduler({"scheduler": {"algorithm": "sm2"}}), SM2Scheduler)
    with pytest.raises(ValueError):
        get_scheduler({"scheduler": {"algorithm": "fsrs"}})


GRADING = {
    "grading": {
        "levenshtein_perfect_threshold": 0.98,
        "levenshtein_good_threshold": 0.85,
        "levenshtein_hard_threshold": 0.6,
    }
}


def test_suggest_grade_ignores_case_and_spacing():
    text = "The Lord is my shepherd; I shall not want."
    assert suggest_grade(text, "the lord is my   shepherd; i shall not want.", GRADING) == 4
    assert suggest_grade(text, "", GRADING) == 1
    assert suggest_grade(text, "completely different words", GRADING) == 1


def test_token_diff_marks_missing_words():
    diff = token_diff("Jesus wept", "Jesus")
    assert diff["expected"] == [
        {"token": "Jesus", "status": "match"},
        {"token": "wept", "status": "missing"},
    ]
    assert diff["actual"] == [{"token": "Jesus", "status": "match"}]
