"""Attempt scoring: validate a full-quiz submission, score it, persist it.

Scoring is a truncating integer percentage (10/15 -> 66). The attempt, its
per-question results and the session aggregates are written in a single
commit. Submissions on one session are serialised by a no-op UPDATE of the
session row taken before the next attempt number is read; the unique
(session, attempt_number) constraint and the session's version column remain
as a backstop and are retried with jittered backoff. Running out of retries
is a ConflictError, never a StateError.
"""
import asyncio
import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from gameiq.core.config import Settings, get_settings
from gameiq.core.errors import ErrorKind, Result, ServiceError
from gameiq.models.attempt import QuizSessionAttempt, QuizSessionQuestionResult
from gameiq.models.question import QuizQuestion
from gameiq.models.quiz_session import PASS_THRESHOLD, QuizSession
from gameiq.services.catalog import QuestionCatalog


class Answer(Protocol):
    question_id: int
    selected_answer: str
    time_taken: int | None


@dataclass(frozen=True)
class GradedAnswer:
    question_number: int  # 1-based
    question_id: int
    answer_selected: str
    is_correct: bool
    time_taken: int | None = None


@dataclass(frozen=True)
class SessionAggregate:
    """The session fields an attempt is allowed to change."""

    best_score: int
    best_attempt_id: int | None
    total_attempts: int
    is_completed: bool

    @classmethod
    def of(cls, session: QuizSession) -> "SessionAggregate":
        return cls(
            best_score=session.best_score,
            best_attempt_id=session.best_attempt_id,
            total_attempts=session.total_attempts,
            is_completed=session.is_completed,
        )

    @property
    def passed(self) -> bool:
        return self.best_score >= PASS_THRESHOLD


@dataclass(frozen=True)
class AttemptStart:
    session: QuizSession
    questions: list[QuizQuestion]
    attempt_number: int


@dataclass(frozen=True)
class AttemptDetail:
    attempt: QuizSessionAttempt
    question_results: list[QuizSessionQuestionResult]
    questions: dict[int, QuizQuestion]


def compute_total_score(correct_answers: int, total_questions: int) -> int:
    """Integer percentage, truncated: floor(correct * 100 / total)."""
    if total_questions <= 0:
        raise ValueError("total_questions must be positive")
    return correct_answers * 100 // total_questions


def apply_attempt_result(aggregate: SessionAggregate, attempt_id: int, total_score: int) -> SessionAggregate:
    """Session aggregates after one more attempt; best_score never decreases.

    best_attempt_id moves only on a strict improvement, so it stays None while
    every attempt has scored 0.
    """
    improved = total_score > aggregate.best_score
    return replace(
        aggregate,
        best_score=max(aggregate.best_score, total_score),
        best_attempt_id=attempt_id if improved else aggregate.best_attempt_id,
        total_attempts=aggregate.total_attempts + 1,
        is_completed=True,
    )


def validate_answers(question_ids: Sequence[int], answers: Sequence[Answer]) -> ServiceError | None:
    """Answers must match the session's questions one-to-one, in issue order."""
    if len(answers) != len(question_ids):
        return ServiceError(
            ErrorKind.VALIDATION,
            f"Must provide exactly {len(question_ids)} answers. Received: {len(answers)}",
            {"expected": len(question_ids), "received": len(answers)},
        )
    for index, (expected, answer) in enumerate(zip(question_ids, answers), start=1):
        if answer.question_id != expected:
            return ServiceError(
                ErrorKind.VALIDATION,
                f"Answer at position {index} is for wrong question. Expected: {expected}, Got: {answer.question_id}",
                {"position": index, "expected": expected, "received": answer.question_id},
            )
    return None


def grade_answers(answers: Sequence[Answer], questions: dict[int, QuizQuestion]) -> list[GradedAnswer]:
    return [
        GradedAnswer(
            question_number=index,
            question_id=answer.question_id,
            answer_selected=answer.selected_answer,
            is_correct=answer.selected_answer == questions[answer.question_id].correct_option_id,
            time_taken=answer.time_taken,
        )
        for index, answer in enumerate(answers, start=1)
    ]


class AttemptScorer:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.logger = logger or logging.getLogger(__name__)
        self.catalog = QuestionCatalog(db)

    async def _get_session(self, session_id: int) -> QuizSession | None:
        result = await self.db.execute(select(QuizSession).where(QuizSession.id == session_id))
        return result.scalar_one_or_none()

    async def _owned_session(self, user_id: int, session_id: int) -> Result[QuizSession]:
        session = await self._get_session(session_id)
        if session is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"Quiz session not found: {session_id}")
        if session.user_id != user_id:
            return Result.failure(ErrorKind.OWNERSHIP, "Quiz session does not belong to user")
        return Result.success(session)

    async def next_attempt_number(self, session_id: int) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.max(QuizSessionAttempt.attempt_number), 0)).where(
                QuizSessionAttempt.quiz_session_id == session_id
            )
        )
        return int(result.scalar_one()) + 1

    async def start_attempt(self, user_id: int, session_id: int) -> Result[AttemptStart]:
        owned = await self._owned_session(user_id, session_id)
        if not owned.ok:
            return Result.from_error(owned.error)
        session = owned.value

        questions = await self.catalog.get_ordered(session.question_ids)
        if len(questions) != session.question_count:
            return Result.failure(ErrorKind.NOT_FOUND, f"Questions missing from catalog for session {session_id}")

        attempt_number = await self.next_attempt_number(session_id)
        self.logger.debug("Starting attempt #%d for quiz session %d", attempt_number, session_id)
        return Result.success(AttemptStart(session=session, questions=questions, attempt_number=attempt_number))

    async def submit_attempt(
        self,
        user_id: int,
        session_id: int,
        answers: Sequence[Answer],
        total_time_taken: int | None = None,
    ) -> Result[QuizSessionAttempt]:
        owned = await self._owned_session(user_id, session_id)
        if not owned.ok:
            return Result.from_error(owned.error)
        session = owned.value
        question_ids = session.question_ids

        invalid = validate_answers(question_ids, answers)
        if invalid is not None:
            return Result.from_error(invalid)

        questions = await self.catalog.get_by_ids(question_ids)
        missing = [qid for qid in question_ids if qid not in questions]
        if missing:
            return Result.failure(ErrorKind.NOT_FOUND, f"Questions not found: {missing}")

        graded = grade_answers(answers, questions)
        correct = sum(1 for g in graded if g.is_correct)
        total_score = compute_total_score(correct, len(question_ids))

        retries = self.settings.attempt_submit_retries
        for try_number in range(retries + 1):
            if try_number:
                await asyncio.sleep(self._backoff_seconds(try_number))
            try:
                attempt, session = await self._persist(
                    session_id, user_id, graded, correct, total_score, total_time_taken
                )
            except (IntegrityError, StaleDataError):
                await self.db.rollback()
                self.logger.warning(
                    "Concurrent submission on quiz session %d (try %d of %d)", session_id, try_number + 1, retries + 1,
                    extra={"user_id": user_id, "session_id": session_id},
                )
                continue

            self.logger.info(
                "Quiz attempt scored: user=%s session=%d attempt=%d score=%d%% correct=%d/%d",
                user_id, session_id, attempt.attempt_number, total_score, correct, len(question_ids),
                extra={
                    "user_id": user_id,
                    "session_id": session_id,
                    "attempt_id": attempt.id,
                    "total_score": total_score,
                    "passed": session.passed,
                },
            )
            return Result.success(attempt)

        self.logger.error(
            "Gave up recording attempt on quiz session %d after %d tries", session_id, retries + 1,
            extra={"user_id": user_id, "session_id": session_id},
        )
        return Result.failure(
            ErrorKind.CONFLICT,
            "Could not record the attempt because of concurrent submissions; please resubmit",
            session_id=session_id,
            tries=retries + 1,
        )

    def _backoff_seconds(self, try_number: int) -> float:
        """Full jitter: uniform in [0, base * 2^(try-1)]."""
        ceiling = self.settings.attempt_retry_backoff_ms * 2 ** (try_number - 1)
        return random.uniform(0, ceiling) / 1000

    async def _lock_session(self, session_id: int) -> QuizSession:
        # First write of the transaction; held until commit/rollback
        await self.db.execute(
            update(QuizSession)
            .where(QuizSession.id == session_id)
            .values(total_attempts=QuizSession.total_attempts)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            select(QuizSession).where(QuizSession.id == session_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _persist(
        self,
        session_id: int,
        user_id: int,
        graded: Sequence[GradedAnswer],
        correct: int,
        total_score: int,
        total_time_taken: int | None,
    ) -> tuple[QuizSessionAttempt, QuizSession]:
        session = await self._lock_session(session_id)
        attempt = QuizSessionAttempt(
            quiz_session_id=session_id,
            user_id=user_id,
            attempt_number=await self.next_attempt_number(session_id),
            total_score=total_score,
            correct_answers=correct,
            total_questions=len(graded),
            time_taken=total_time_taken,
            completed_at=datetime.now(timezone.utc),
        )
        attempt.question_results = [
            QuizSessionQuestionResult(
                question_id=g.question_id,
                question_number=g.question_number,
                answer_selected=g.answer_selected,
                is_correct=g.is_correct,
                time_taken=g.time_taken,
            )
            for g in graded
        ]
        self.db.add(attempt)
        await self.db.flush()

        aggregate = apply_attempt_result(SessionAggregate.of(session), attempt.id, total_score)
        session.best_score = aggregate.best_score
        session.best_attempt_id = aggregate.best_attempt_id
        session.total_attempts = aggregate.total_attempts
        session.is_completed = aggregate.is_completed
        await self.db.commit()
        return attempt, session

    async def get_attempt_detail(self, user_id: int, attempt_id: int) -> Result[AttemptDetail]:
        attempt = await self.db.get(QuizSessionAttempt, attempt_id)
        if attempt is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"Quiz attempt not found: {attempt_id}")
        if attempt.user_id != user_id:
            return Result.failure(ErrorKind.OWNERSHIP, "Quiz attempt does not belong to user")

        result = await self.db.execute(
            select(QuizSessionQuestionResult)
            .where(QuizSessionQuestionResult.attempt_id == attempt_id)
            .order_by(QuizSessionQuestionResult.question_number.asc())
        )
        question_results = list(result.scalars().all())
        questions = await self.catalog.get_by_ids(r.question_id for r in question_results)
        return Result.success(AttemptDetail(attempt=attempt, question_results=question_results, questions=questions))
