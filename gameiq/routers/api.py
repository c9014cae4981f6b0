"""API routes: JSON for quiz sessions, attempts and AI usage."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from gameiq.routers.deps import (
    get_attempt_scorer,
    get_current_user_id,
    get_session_manager,
    get_usage_ledger,
    raise_for_error,
)
from gameiq.schemas.question import QuestionOutSchema, QuestionReviewSchema
from gameiq.schemas.quiz import (
    AttemptDetailOutSchema,
    AttemptOutSchema,
    AttemptStartOutSchema,
    ProgressionOutSchema,
    QuestionResultOutSchema,
    QuizRequestSchema,
    QuizSessionOutSchema,
    SessionSummaryOutSchema,
    SubmitAttemptSchema,
)
from gameiq.schemas.usage import (
    BudgetOutSchema,
    UsageRecordInSchema,
    UsageRecordOutSchema,
    UsageSummaryOutSchema,
)
from gameiq.services.attempts import AttemptScorer
from gameiq.services.quiz_sessions import QuizSessionManager
from gameiq.services.usage import UsageLedger

router = APIRouter(prefix="/api", tags=["api"])

UserId = Annotated[int, Depends(get_current_user_id)]
Manager = Annotated[QuizSessionManager, Depends(get_session_manager)]
Scorer = Annotated[AttemptScorer, Depends(get_attempt_scorer)]
Ledger = Annotated[UsageLedger, Depends(get_usage_ledger)]


# ---------- quizzes ----------

@router.post("/quizzes/core", response_model=QuizSessionOutSchema)
async def create_or_get_core_quiz(body: QuizRequestSchema, user_id: UserId, manager: Manager):
    """Get the user's CORE quiz for sport/position, creating it on first request."""
    result = await manager.create_or_get_core_quiz(user_id, body.sport, body.position)
    if not result.ok:
        raise_for_error(result.error)
    return QuizSessionOutSchema.model_validate(result.value)


@router.post("/quizzes/generate", response_model=QuizSessionOutSchema, status_code=201)
async def generate_new_quiz(body: QuizRequestSchema, user_id: UserId, manager: Manager):
    """Create the next GENERATED quiz; only allowed once the previous quiz is passed."""
    result = await manager.generate_new_quiz(user_id, body.sport, body.position)
    if not result.ok:
        raise_for_error(result.error)
    return QuizSessionOutSchema.model_validate(result.value)


@router.get("/quizzes/can-generate", response_model=ProgressionOutSchema)
async def can_generate_new_quiz(
    user_id: UserId,
    manager: Manager,
    sport: Annotated[str, Query(min_length=1)],
    position: Annotated[str, Query(min_length=1)],
):
    state = await manager.get_progression(user_id, sport, position)
    return ProgressionOutSchema(
        sport=sport,
        position=position,
        can_generate=state.can_generate,
        stage=state.stage.value,
        generated_index=state.generated_index,
    )


@router.get("/quizzes", response_model=list[SessionSummaryOutSchema])
async def get_sessions(
    user_id: UserId,
    manager: Manager,
    sport: str | None = None,
    position: str | None = None,
    min_score: Annotated[int | None, Query(ge=0, le=100)] = None,
):
    summaries = await manager.get_sessions(user_id, sport, position, min_score)
    return [
        SessionSummaryOutSchema(
            session=QuizSessionOutSchema.model_validate(s.session),
            attempts=[AttemptOutSchema.model_validate(a) for a in s.attempts],
            total_attempts=s.total_attempts,
            best_score=s.best_score,
            latest_score=s.latest_score,
            passed=s.passed,
        )
        for s in summaries
    ]


# ---------- attempts ----------

@router.post("/quizzes/{session_id}/attempts/start", response_model=AttemptStartOutSchema)
async def start_attempt(session_id: int, user_id: UserId, scorer: Scorer):
    """Questions in session order plus the advisory next attempt number."""
    result = await scorer.start_attempt(user_id, session_id)
    if not result.ok:
        raise_for_error(result.error)
    start = result.value
    return AttemptStartOutSchema(
        session=QuizSessionOutSchema.model_validate(start.session),
        questions=[QuestionOutSchema.model_validate(q) for q in start.questions],
        attempt_number=start.attempt_number,
    )


@router.post("/quizzes/{session_id}/attempts", response_model=AttemptOutSchema, status_code=201)
async def submit_attempt(session_id: int, body: SubmitAttemptSchema, user_id: UserId, scorer: Scorer):
    """Score a complete submission; answers must follow the session's question order."""
    result = await scorer.submit_attempt(user_id, session_id, body.answers, body.total_time_taken)
    if not result.ok:
        raise_for_error(result.error)
    return AttemptOutSchema.model_validate(result.value)


@router.get("/attempts/{attempt_id}", response_model=AttemptDetailOutSchema)
async def get_attempt_detail(attempt_id: int, user_id: UserId, scorer: Scorer):
    result = await scorer.get_attempt_detail(user_id, attempt_id)
    if not result.ok:
        raise_for_error(result.error)
    detail = result.value
    return AttemptDetailOutSchema(
        attempt=AttemptOutSchema.model_validate(detail.attempt),
        question_results=[
            QuestionResultOutSchema(
                question_number=r.question_number,
                question_id=r.question_id,
                answer_selected=r.answer_selected,
                is_correct=r.is_correct,
                time_taken=r.time_taken,
                question=(
                    QuestionReviewSchema.model_validate(detail.questions[r.question_id])
                    if r.question_id in detail.questions
                    else None
                ),
            )
            for r in detail.question_results
        ],
    )


# ---------- usage ledger ----------

@router.get("/usage/budget", response_model=BudgetOutSchema)
async def check_budget(user_id: UserId, ledger: Ledger):
    """Gate to call before any AI-backed feature."""
    result = await ledger.check_budget(user_id)
    if not result.ok:
        raise_for_error(result.error)
    status = result.value
    return BudgetOutSchema(
        tier=status.tier.value,
        spent_cents=status.spent_cents,
        cap_cents=status.cap_cents,
        remaining_cents=status.remaining_cents,
    )


@router.get("/usage", response_model=UsageSummaryOutSchema)
async def monthly_usage(user_id: UserId, ledger: Ledger):
    result = await ledger.monthly_usage(user_id)
    if not result.ok:
        raise_for_error(result.error)
    summary = result.value
    return UsageSummaryOutSchema(
        tier=summary.tier.value,
        spent_cents=summary.spent_cents,
        cap_cents=summary.cap_cents,
        remaining_cents=summary.remaining_cents,
        input_tokens=summary.input_tokens,
        output_tokens=summary.output_tokens,
        calls=summary.calls,
    )


@router.post("/usage", response_model=UsageRecordOutSchema, status_code=201)
async def record_usage(body: UsageRecordInSchema, user_id: UserId, ledger: Ledger):
    """Charge one AI call (chat, workout generation, ...) against the monthly cap.

    The cap check and the record happen in one locked transaction; once the
    cap is reached further charges are refused with 429.
    """
    result = await ledger.charge(user_id, body.input_tokens, body.output_tokens, body.feature)
    if not result.ok:
        raise_for_error(result.error)
    charge = result.value
    return UsageRecordOutSchema(
        cost_cents=charge.cost_cents,
        spent_cents=charge.spent_cents,
        cap_cents=charge.cap_cents,
    )
