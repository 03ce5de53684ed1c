from models.verse import LearningPhase
from utils.learning_phase import advance_phase, mastery_percent, phase_from_storage, skips_self_grading


def test_beginner_advances_after_any_grade():
    for grade in (1, 2, 3, 4):
        assert advance_phase(LearningPhase.BEGINNER, grade) == LearningPhase.LEARNING


def test_learning_needs_good_or_better():
    phase = LearningPhase.LEARNING
    for _ in range(5):
        phase = advance_phase(phase, 2)
    assert phase == LearningPhase.LEARNING
    assert advance_phase(phase, 3) == LearningPhase.MASTERED
    assert advance_phase(LearningPhase.LEARNING, 4) == LearningPhase.MASTERED


def test_mastered_never_regresses():
    assert advance_phase(LearningPhase.MASTERED, 1) == LearningPhase.MASTERED


def test_only_beginners_skip_self_grading():
    assert skips_self_grading(LearningPhase.BEGINNER)
    assert not skips_self_grading(LearningPhase.LEARNING)
    assert not skips_self_grading(LearningPhase.MASTERED)


def test_legacy_rows_without_phase_are_mastered():
    assert phase_from_storage(None) == LearningPhase.MASTERED
    assert phase_from_storage("") == LearningPhase.MASTERED
    assert phase_from_storage("learning") == LearningPhase.LEARNING


def test_mastery_percent():
    assert mastery_percent(0, 0) == 0.0
    assert mastery_percent(1, 3) == 33.3
