from __future__ import annotations

from typing import Optional

from models.verse import LearningPhase

MASTERY_MIN_GRADE = 3  # Good or Easy


def advance_phase(phase: LearningPhase, grade: int) -> LearningPhase:
    """Next mastery phase after one completed review.

    beginner -> learning after any review (the first pass is guided, not graded
    on recall); learning -> mastered only on Good or better; mastered is terminal.
    """
    if phase == LearningPhase.BEGINNER:
        return LearningPhase.LEARNING
    if phase == LearningPhase.LEARNING and grade >= MASTERY_MIN_GRADE:
        return LearningPhase.MASTERED
    return phase


def skips_self_grading(phase: LearningPhase) -> bool:
    """Beginner items are auto-graded as Good instead of self-graded."""
    return phase == LearningPhase.BEGINNER


def phase_from_storage(value: Optional[str]) -> LearningPhase:
    # Items stored before phases existed are treated as already mastered.
    if not value:
        return LearningPhase.MASTERED
    return LearningPhase(value)


def mastery_percent(mastered: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round((mastered / total) * 100, 1)
