"""Quiz session manager: the CORE quiz and the chain of GENERATED quizzes.

Generated quizzes sample questions this user has not been served yet for the
sport/position. When the catalog runs out of fresh questions the AI generator
(if configured) tops it up; without a generator, previously served questions
are reused only as a last resort.
"""
import json
import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gameiq.core.config import Settings, get_settings
from gameiq.core.errors import ErrorKind, ExternalGenerationError, Result
from gameiq.models.attempt import QuizSessionAttempt
from gameiq.models.question import QuestionSource, QuizQuestion
from gameiq.models.quiz_session import QuizSession, QuizType
from gameiq.models.usage import AIFeature
from gameiq.models.user import User
from gameiq.services.catalog import QuestionCatalog, normalize_key
from gameiq.services.generation import QuestionGenerator
from gameiq.services.progression import ProgressionState, progression_state
from gameiq.services.usage import UsageLedger

NO_QUESTIONS_AVAILABLE = "NoQuestionsAvailable"
GENERATION_NOT_UNLOCKED = "GenerationNotUnlocked"


@dataclass(frozen=True)
class SessionSummary:
    session: QuizSession
    attempts: list[QuizSessionAttempt]  # newest first, after min_score filtering
    total_attempts: int
    best_score: int
    latest_score: int
    passed: bool


def _display(value: str) -> str:
    return value[:1].upper() + value[1:]


def core_session_name(sport: str, position: str) -> str:
    return f"Core {_display(sport)} {_display(position)} Quiz"


def generated_session_name(sport: str, position: str, number: int) -> str:
    return f"Generated {_display(sport)} {_display(position)} Quiz #{number}"


def served_question_ids(sessions: Sequence[QuizSession]) -> set[int]:
    served: set[int] = set()
    for s in sessions:
        served.update(s.question_ids)
    return served


class QuizSessionManager:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
        generator: QuestionGenerator | None = None,
        ledger: UsageLedger | None = None,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.logger = logger or logging.getLogger(__name__)
        self.catalog = QuestionCatalog(db)
        self.generator = generator
        self.ledger = ledger or UsageLedger(db, self.settings)
        self.rng = rng or random.Random()

    # ---------- queries ----------

    async def _sessions_for(self, user_id: int, sport: str, position: str) -> list[QuizSession]:
        result = await self.db.execute(
            select(QuizSession)
            .where(
                QuizSession.user_id == user_id,
                QuizSession.sport == sport,
                QuizSession.position == position,
            )
            .order_by(QuizSession.sequence_number.asc())
        )
        return list(result.scalars().all())

    async def _find_core(self, user_id: int, sport: str, position: str) -> QuizSession | None:
        result = await self.db.execute(
            select(QuizSession).where(
                QuizSession.user_id == user_id,
                QuizSession.quiz_type == QuizType.CORE,
                QuizSession.sport == sport,
                QuizSession.position == position,
            )
        )
        return result.scalar_one_or_none()

    async def get_progression(self, user_id: int, sport: str, position: str) -> ProgressionState:
        sessions = await self._sessions_for(user_id, normalize_key(sport), normalize_key(position))
        return progression_state(sessions)

    async def can_generate_new_quiz(self, user_id: int, sport: str, position: str) -> bool:
        return (await self.get_progression(user_id, sport, position)).can_generate

    async def get_sessions(
        self,
        user_id: int,
        sport: str | None = None,
        position: str | None = None,
        min_score: int | None = None,
    ) -> list[SessionSummary]:
        stmt = select(QuizSession).where(QuizSession.user_id == user_id)
        if sport is not None:
            stmt = stmt.where(QuizSession.sport == normalize_key(sport))
        if position is not None:
            stmt = stmt.where(QuizSession.position == normalize_key(position))
        sessions = list((await self.db.execute(stmt.order_by(QuizSession.id.asc()))).scalars().all())
        if not sessions:
            return []

        result = await self.db.execute(
            select(QuizSessionAttempt)
            .where(QuizSessionAttempt.quiz_session_id.in_([s.id for s in sessions]))
            .order_by(QuizSessionAttempt.attempt_number.desc())
        )
        by_session: dict[int, list[QuizSessionAttempt]] = {s.id: [] for s in sessions}
        for attempt in result.scalars().all():
            by_session[attempt.quiz_session_id].append(attempt)

        summaries = []
        for s in sessions:
            attempts = by_session[s.id]
            shown = [a for a in attempts if a.total_score >= min_score] if min_score is not None else attempts
            summaries.append(
                SessionSummary(
                    session=s,
                    attempts=shown,
                    total_attempts=len(attempts),
                    best_score=s.best_score,
                    latest_score=attempts[0].total_score if attempts else 0,
                    passed=s.passed,
                )
            )
        return summaries

    # ---------- CORE ----------

    async def create_or_get_core_quiz(self, user_id: int, sport: str, position: str) -> Result[QuizSession]:
        sport, position = normalize_key(sport), normalize_key(position)

        core = await self._find_core(user_id, sport, position)
        if core is not None:
            return Result.success(core)

        if await self.db.get(User, user_id) is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"User not found: {user_id}")

        questions = await self.catalog.get_questions(sport, position, source=QuestionSource.CATALOG)
        if not questions:
            return Result.failure(
                ErrorKind.STATE,
                f"No questions available for {sport}/{position}",
                reason=NO_QUESTIONS_AVAILABLE,
            )

        core = QuizSession(
            user_id=user_id,
            quiz_type=QuizType.CORE,
            sport=sport,
            position=position,
            sequence_number=0,
            question_ids_json=json.dumps([q.id for q in questions]),
            session_name=core_session_name(sport, position),
            is_completed=False,
            best_score=0,
            total_attempts=0,
        )
        self.db.add(core)
        try:
            await self.db.commit()
        except IntegrityError:
            # lost a race with a concurrent request for the same CORE quiz
            await self.db.rollback()
            existing = await self._find_core(user_id, sport, position)
            if existing is None:
                raise
            return Result.success(existing)

        self.logger.info(
            "Created core quiz for user %s: %s/%s with %d questions",
            user_id, sport, position, len(questions),
            extra={"user_id": user_id, "session_id": core.id, "sport": sport, "position": position},
        )
        return Result.success(core)

    # ---------- GENERATED ----------

    async def generate_new_quiz(self, user_id: int, sport: str, position: str) -> Result[QuizSession]:
        sport, position = normalize_key(sport), normalize_key(position)

        if await self.db.get(User, user_id) is None:
            return Result.failure(ErrorKind.NOT_FOUND, f"User not found: {user_id}")

        sessions = await self._sessions_for(user_id, sport, position)
        state = progression_state(sessions)
        if not state.can_generate:
            self.logger.info(
                "Generation refused for user %s: %s/%s is %s",
                user_id, sport, position, state.stage.value,
                extra={"user_id": user_id, "sport": sport, "position": position, "stage": state.stage.value},
            )
            return Result.failure(
                ErrorKind.STATE,
                "Cannot generate new quiz. Must pass previous quiz with 70% or higher.",
                reason=GENERATION_NOT_UNLOCKED,
                stage=state.stage.value,
            )

        size = self.settings.generated_quiz_size
        sequence_number = len(sessions)

        picked = await self._pick_question_ids(user_id, sport, position, sessions, size)
        if not picked.ok:
            await self.db.rollback()
            return picked
        question_ids, used_ai, tokens = picked.value

        session = QuizSession(
            user_id=user_id,
            quiz_type=QuizType.GENERATED,
            sport=sport,
            position=position,
            sequence_number=sequence_number,
            question_ids_json=json.dumps(question_ids),
            session_name=generated_session_name(sport, position, sequence_number),
            is_completed=False,
            best_score=0,
            total_attempts=0,
        )
        self.db.add(session)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            if used_ai:
                # the AI call was paid for even though its questions were discarded
                await self.ledger.record_usage(user_id, tokens[0], tokens[1], AIFeature.QUIZ_GENERATION)
            return Result.failure(
                ErrorKind.STATE,
                f"Quiz #{sequence_number} for {sport}/{position} was created by a concurrent request",
                reason=GENERATION_NOT_UNLOCKED,
            )

        self.logger.info(
            "Generated quiz #%d for user %s: %s/%s (%s)",
            sequence_number, user_id, sport, position, "ai" if used_ai else "catalog",
            extra={"user_id": user_id, "session_id": session.id, "sequence_number": sequence_number},
        )
        return Result.success(session)

    async def _pick_question_ids(
        self,
        user_id: int,
        sport: str,
        position: str,
        sessions: Sequence[QuizSession],
        size: int,
    ) -> Result[tuple[list[int], bool, tuple[int, int]]]:
        """Question ids for the next generated quiz, plus whether AI was used and its tokens."""
        catalog = await self.catalog.get_questions(sport, position)
        served = served_question_ids(sessions)
        fresh = [q for q in catalog if q.id not in served]

        if len(fresh) >= size:
            return Result.success(([q.id for q in self.rng.sample(fresh, size)], False, (0, 0)))

        if self.generator is not None:
            generated = await self._generate_with_ai(user_id, sport, position, size, catalog)
            if not generated.ok:
                return Result.from_error(generated.error)
            questions, tokens = generated.value
            return Result.success(([q.id for q in questions], True, tokens))

        if len(catalog) >= size:
            repeats = [q for q in catalog if q.id in served]
            ids = [q.id for q in fresh] + [q.id for q in self.rng.sample(repeats, size - len(fresh))]
            self.rng.shuffle(ids)
            self.logger.warning(
                "Catalog exhausted for user %s on %s/%s; reusing %d served questions",
                user_id, sport, position, size - len(fresh),
            )
            return Result.success((ids, False, (0, 0)))

        return Result.failure(
            ErrorKind.STATE,
            f"Not enough questions available for {sport}/{position}",
            reason=NO_QUESTIONS_AVAILABLE,
            available=len(catalog),
            required=size,
        )

    async def _generate_with_ai(
        self,
        user_id: int,
        sport: str,
        position: str,
        size: int,
        existing: Sequence[QuizQuestion],
    ) -> Result[tuple[list[QuizQuestion], tuple[int, int]]]:
        budget = await self.ledger.check_budget(user_id)
        if not budget.ok:
            return Result.from_error(budget.error)

        try:
            batch = await self.generator.generate(sport, position, size, existing)
        except ExternalGenerationError as e:
            self.logger.warning(
                "Question generation failed for %s/%s: %s", sport, position, e,
                extra={"user_id": user_id, "sport": sport, "position": position},
            )
            # nothing is staged yet; only the spend is kept
            await self.db.rollback()
            if e.input_tokens or e.output_tokens:
                await self.ledger.record_usage(user_id, e.input_tokens, e.output_tokens, AIFeature.QUIZ_GENERATION)
            return Result.failure(ErrorKind.EXTERNAL_GENERATION, str(e))

        questions = await self.catalog.add_generated(sport, position, batch.records, batch_tag=uuid4().hex[:12])
        recorded = await self.ledger.record_usage(
            user_id, batch.input_tokens, batch.output_tokens, AIFeature.QUIZ_GENERATION, commit=False
        )
        if not recorded.ok:
            return Result.from_error(recorded.error)
        return Result.success((questions, (batch.input_tokens, batch.output_tokens)))
