"""Tests for attempt validation, scoring, persistence and retry on conflicts."""

import asyncio
import random

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from gameiq.core.errors import ErrorKind
from gameiq.models.attempt import QuizSessionAttempt, QuizSessionQuestionResult
from gameiq.models.quiz_session import QuizSession
from gameiq.schemas.quiz import AnswerSchema
from gameiq.services.attempts import AttemptScorer
from gameiq.services.quiz_sessions import QuizSessionManager


async def core_quiz(db, settings, user_id, add_questions, count=5):
    await add_questions(count)
    manager = QuizSessionManager(db, settings, rng=random.Random(1))
    return (await manager.create_or_get_core_quiz(user_id, "basketball", "point-guard")).value


async def attempt_count(db, session_id) -> int:
    result = await db.execute(
        select(func.count(QuizSessionAttempt.id)).where(QuizSessionAttempt.quiz_session_id == session_id)
    )
    return result.scalar_one()


async def session_row(db, session_id):
    result = await db.execute(
        select(
            QuizSession.best_score,
            QuizSession.best_attempt_id,
            QuizSession.total_attempts,
            QuizSession.is_completed,
        ).where(QuizSession.id == session_id)
    )
    return result.one()


class TestStartAttempt:
    @pytest.mark.asyncio
    async def test_questions_in_session_order(self, db, settings, make_user, add_questions):
        user = await make_user()
        core = await core_quiz(db, settings, user.id, add_questions)

        start = (await AttemptScorer(db, settings).start_attempt(user.id, core.id)).value
        assert [q.id for q in start.questions] == core.question_ids
        assert start.attempt_number == 1

    @pytest.mark.asyncio
    async def test_other_users_session(self, db, settings, make_user, add_questions):
        owner, intruder = await make_user(), await make_user()
        core = await core_quiz(db, settings, owner.id, add_questions)

        result = await AttemptScorer(db, settings).start_attempt(intruder.id, core.id)
        assert result.error.kind == ErrorKind.OWNERSHIP

    @pytest.mark.asyncio
    async def test_unknown_session(self, db, settings, make_user):
        user = await make_user()
        result = await AttemptScorer(db, settings).start_attempt(user.id, 12345)
        assert result.error.kind == ErrorKind.NOT_FOUND


class TestSubmitValidation:
    @pytest.mark.asyncio
    async def test_wrong_answer_count(self, db, settings, make_user, add_questions, answer_sheet):
        user = await make_user()
        core = await core_quiz(db, settings, user.id, add_questions)

        answers = answer_sheet(core.question_ids, 5)[:4]
        result = await AttemptScorer(db, settings).submit_attempt(user.id, core.id, answers)
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.details == {"expected": 5, "received": 4}
        assert await attempt_count(db, core.id) == 0

    @pytest.mark.asyncio
    async def test_answers_out_of_order(self, db, settings, make_user, add_questions, answer_sheet):
        user = await make_user()
        core = await core_quiz(db, settings, user.id, add_questions)

        answers = answer_sheet(core.question_ids, 5)
        answers[0], answers[1] = answers[1], answers[0]
        result = await AttemptScorer(db, settings).submit_attempt(user.id, core.id, answers)
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.details["position"] == 1
        assert await attempt_count(db, core.id) == 0

    @pytest.mark.asyncio
    async def test_foreign_question_id(self, db, settings, make_user, add_questions, answer_sheet):
        user = await make_user()
        core = await core_quiz(db, settings, user.id, add_questions)

        answers = answer_sheet(core.question_ids, 5)
        answers[-1] = AnswerSchema(question_id=99999, selected_answer="A")
        result = await AttemptScorer(db, settings).submit_attempt(user.id, core.id, answers)
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.details["position"] == 5

    @pytest.mark.asyncio
    async def test_other_users_session(self, db, settings, make_user, add_questions, answer_sheet):
        owner, intruder = await make_user(), await make_user()
        core = await core_quiz(db, settings, owner.id, add_questions)

        result = await AttemptScorer(db, settings).submit_attempt(
            intruder.id, core.id, answer_sheet(core.question_ids, 5)
        )
        assert result.error.kind == ErrorKind.OWNERSHIP
        assert await attempt_count(db, core.id) == 0


class TestSubmitScoring:
    @pytest.mark.asyncio
    async def test_scores_and_results_are_stored(self, db, settings, make_user, add_questions, answer_sheet):
        user = await make_user()
        core = await core_quiz(db, settings, user.id, add_questions)

        attempt = (
            await AttemptScorer(db, settings).submit_attempt(
                user.id, core.id, answer_sheet(core.question_ids, 3), total_time_taken=95
            )
        ).value
        assert attempt.attempt_number == 1
        assert attempt.total_score == 60
        assert attempt.correct_answers == 3
        assert attempt.total_questions == 5
        assert attempt.time_taken == 95

        results = (
            await db.execute(
                select(QuizSessionQuestionResult)
                .where(QuizSessionQuestionResult.attempt_id == attempt.id)
                .order_by(QuizSessionQuestionResult.question_number)
            )
        ).scalars().all()
        assert [r.question_number for r in results] == [1, 2, 3, 4, 5]
        assert [r.question_id for r in results] == core.question_ids
        assert [r.is_correct for r in results] == [True, True, True, False, False]

        best_score, best_attempt_id, total_attempts, is_completed = await session_row(db, core.id)
        assert (best_score, best_attempt_id, total_attempts, is_completed) == (60, attempt.id, 1, True)

    @pytest.mark.asyncio
    async def test_best_score_never_decreases(self, db, settings, make_user, add_questions, answer_sheet):
        user = await make_user()
        core = await core_quiz(db, settings, user.id, add_questions)
        scorer = AttemptScorer(db, settings)

        scores = []
        for correct in (2, 4, 1):
            attempt = (await scorer.submit_attempt(user.id, core.id, answer_sheet(core.question_ids, correct))).value
            scores.append((attempt.attempt_number, attempt.id, attempt.total_score))

        assert [n for n, _, _ in scores] == [1, 2, 3]
        best_score, best_attempt_id, total_attempts, _ = await session_row(db, core.id)
        assert best_score == 80
        assert best_attempt_id == scores[1][1]
        assert total_attempts == 3
        assert core.passed is True

    @pytest.mark.asyncio
    async def test_zero_score_first_attempt(self, db, settings, make_user, add_questions, answer_sheet):
        user = await make_user()
        core = await core_quiz(db, settings, user.id, add_questions)

        attempt = (
            await AttemptScorer(db, settings).submit_attempt(user.id, core.id, answer_sheet(core.question_ids, 0))
        ).value
        assert attempt.total_score == 0
        best_score, best_attempt_id, total_attempts, is_completed = await session_row(db, core.id)
        assert best_score == 0
        assert best_attempt_id is None
        assert total_attempts == 1
        assert is_completed is True
        assert core.passed is False


class TestSubmitConcurrency:
    @pytest.mark.asyncio
    async def test_conflicting_attempt_number_is_retried(
        self, db, settings, make_user, add_questions, answer_sheet, monkeypatch
    ):
        user = await make_user()
        user_id = user.id
        core = await core_quiz(db, settings, user_id, add_questions)
        core_id, question_ids = core.id, core.question_ids
        scorer = AttemptScorer(db, settings)
        await scorer.submit_attempt(user_id, core_id, answer_sheet(question_ids, 5))

        original = AttemptScorer.next_attempt_number
        calls = []

        async def stale_on_first_call(self, session_id):
            calls.append(session_id)
            if len(calls) == 1:
                return 1  # taken by the submission above
            return await original(self, session_id)

        monkeypatch.setattr(AttemptScorer, "next_attempt_number", stale_on_first_call)

        result = await scorer.submit_attempt(user_id, core_id, answer_sheet(question_ids, 2))
        assert result.ok
        assert result.value.attempt_number == 2
        assert len(calls) == 2

        best_score, _, total_attempts, _ = await session_row(db, core_id)
        assert total_attempts == 2
        assert best_score == 100
        assert await attempt_count(db, core_id) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, db, settings, make_user, add_questions, answer_sheet, monkeypatch):
        user = await make_user()
        user_id = user.id
        core = await core_quiz(db, settings, user_id, add_questions)
        core_id, question_ids = core.id, core.question_ids
        scorer = AttemptScorer(db, settings)
        await scorer.submit_attempt(user_id, core_id, answer_sheet(question_ids, 5))

        async def always_taken(self, session_id):
            return 1

        monkeypatch.setattr(AttemptScorer, "next_attempt_number", always_taken)

        result = await scorer.submit_attempt(user_id, core_id, answer_sheet(question_ids, 2))
        assert result.error.kind == ErrorKind.CONFLICT
        assert result.error.details["tries"] == settings.attempt_submit_retries + 1
        assert await attempt_count(db, core_id) == 1
        _, _, total_attempts, _ = await session_row(db, core_id)
        assert total_attempts == 1
        orphans = await db.execute(select(func.count(QuizSessionQuestionResult.id)))
        assert orphans.scalar_one() == 5

    @pytest.mark.asyncio
    async def test_stale_version_is_retried(self, db, settings, make_user, add_questions, answer_sheet, monkeypatch):
        user = await make_user()
        user_id = user.id
        core = await core_quiz(db, settings, user_id, add_questions)
        core_id, question_ids = core.id, core.question_ids

        original = AttemptScorer._persist
        calls = []

        async def stale_on_first_call(self, session_id, *args):
            calls.append(session_id)
            if len(calls) == 1:
                raise StaleDataError("quiz_sessions row was updated by another transaction")
            return await original(self, session_id, *args)

        monkeypatch.setattr(AttemptScorer, "_persist", stale_on_first_call)

        result = await AttemptScorer(db, settings).submit_attempt(user_id, core_id, answer_sheet(question_ids, 4))
        assert result.ok
        assert result.value.attempt_number == 1
        assert calls == [core_id, core_id]
        best_score, _, total_attempts, _ = await session_row(db, core_id)
        assert (best_score, total_attempts) == (80, 1)

    @pytest.mark.asyncio
    async def test_outdated_session_version_is_rejected(self, session_factory, db, settings, make_user, add_questions):
        user = await make_user()
        core = await core_quiz(db, settings, user.id, add_questions)
        core_id = core.id

        async with session_factory() as first, session_factory() as second:
            mine = await first.get(QuizSession, core_id)
            theirs = await second.get(QuizSession, core_id)
            mine.total_attempts = 1
            await first.commit()

            theirs.total_attempts = 1
            with pytest.raises(StaleDataError):
                await second.commit()
            await second.rollback()

    @pytest.mark.asyncio
    async def test_parallel_submissions_get_consecutive_numbers(
        self, session_factory, db, settings, make_user, add_questions, answer_sheet
    ):
        user = await make_user()
        user_id = user.id
        core = await core_quiz(db, settings, user_id, add_questions)
        core_id, question_ids = core.id, core.question_ids

        async def submit_on_own_session(correct):
            async with session_factory() as session:
                result = await AttemptScorer(session, settings).submit_attempt(
                    user_id, core_id, answer_sheet(question_ids, correct)
                )
                if not result.ok:
                    return result.error.kind
                return result.value.attempt_number

        numbers = await asyncio.gather(*(submit_on_own_session(n % 6) for n in range(8)))
        assert sorted(numbers) == list(range(1, 9))

        best_score, best_attempt_id, total_attempts, _ = await session_row(db, core_id)
        assert total_attempts == 8
        assert best_score == 100
        assert best_attempt_id is not None
        assert await attempt_count(db, core_id) == 8


class TestAttemptDetail:
    @pytest.mark.asyncio
    async def test_detail_includes_answer_key(self, db, settings, make_user, add_questions, answer_sheet):
        user = await make_user()
        core = await core_quiz(db, settings, user.id, add_questions)
        scorer = AttemptScorer(db, settings)
        attempt = (await scorer.submit_attempt(user.id, core.id, answer_sheet(core.question_ids, 4))).value

        detail = (await scorer.get_attempt_detail(user.id, attempt.id)).value
        assert detail.attempt.id == attempt.id
        assert [r.question_id for r in detail.question_results] == core.question_ids
        first = detail.questions[core.question_ids[0]]
        assert first.correct_option_id == "A"
        assert len(first.options) == 4

    @pytest.mark.asyncio
    async def test_other_users_attempt(self, db, settings, make_user, add_questions, answer_sheet):
        owner, intruder = await make_user(), await make_user()
        core = await core_quiz(db, settings, owner.id, add_questions)
        scorer = AttemptScorer(db, settings)
        attempt = (await scorer.submit_attempt(owner.id, core.id, answer_sheet(core.question_ids, 4))).value

        assert (await scorer.get_attempt_detail(intruder.id, attempt.id)).error.kind == ErrorKind.OWNERSHIP
        assert (await scorer.get_attempt_detail(owner.id, 777)).error.kind == ErrorKind.NOT_FOUND
