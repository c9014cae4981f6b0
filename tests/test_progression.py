"""Tests for the CORE -> GENERATED unlock chain."""

from gameiq.models.quiz_session import QuizSession, QuizType
from gameiq.services.progression import ProgressionStage, can_generate, progression_state


def session(quiz_type: QuizType, sequence_number: int, best_score: int, session_id: int | None = None) -> QuizSession:
    return QuizSession(
        id=session_id,
        user_id=1,
        quiz_type=quiz_type,
        sport="basketball",
        position="point-guard",
        sequence_number=sequence_number,
        question_ids_json="[]",
        session_name="test",
        best_score=best_score,
        total_attempts=1 if best_score else 0,
        is_completed=bool(best_score),
    )


def core(best_score: int) -> QuizSession:
    return session(QuizType.CORE, 0, best_score, session_id=1)


def generated(k: int, best_score: int) -> QuizSession:
    return session(QuizType.GENERATED, k, best_score, session_id=k + 1)


class TestProgressionState:
    def test_no_sessions(self):
        state = progression_state([])
        assert state.stage == ProgressionStage.NO_CORE
        assert state.can_generate is False

    def test_core_not_passed(self):
        assert progression_state([core(66)]).stage == ProgressionStage.CORE_UNPASSED
        assert can_generate([core(66)]) is False

    def test_core_passed_unlocks_first_generated(self):
        state = progression_state([core(70)])
        assert state.stage == ProgressionStage.CORE_UNLOCKED
        assert state.can_generate is True

    def test_unpassed_generated_blocks_next(self):
        state = progression_state([core(90), generated(1, 40)])
        assert state.stage == ProgressionStage.GENERATED_UNPASSED
        assert state.generated_index == 1
        assert state.can_generate is False

    def test_passed_generated_unlocks_next(self):
        state = progression_state([core(90), generated(1, 73)])
        assert state.stage == ProgressionStage.GENERATED_UNLOCKED
        assert state.generated_index == 1
        assert state.can_generate is True

    def test_only_latest_generated_counts(self):
        sessions = [core(90), generated(1, 100), generated(2, 50)]
        assert can_generate(sessions) is False
        sessions = [core(90), generated(1, 20), generated(2, 80)]
        assert can_generate(sessions) is True

    def test_order_of_input_does_not_matter(self):
        sessions = [generated(2, 50), core(90), generated(1, 100)]
        assert progression_state(sessions).generated_index == 2
        assert can_generate(sessions) is False

    def test_generated_without_passed_core_stays_locked(self):
        assert can_generate([core(10), generated(1, 100)]) is False
