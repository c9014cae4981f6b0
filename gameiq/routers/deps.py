"""Shared router dependencies: caller identity, services, error mapping."""
from typing import Annotated, NoReturn

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gameiq.core.config import get_settings
from gameiq.core.errors import HTTP_STATUS_BY_KIND, ServiceError
from gameiq.db.session import get_db
from gameiq.services.attempts import AttemptScorer
from gameiq.services.generation import QuestionGenerator
from gameiq.services.quiz_sessions import QuizSessionManager
from gameiq.services.usage import UsageLedger


def raise_for_error(error: ServiceError) -> NoReturn:
    raise HTTPException(status_code=HTTP_STATUS_BY_KIND[error.kind], detail=error.to_dict())


def get_current_user_id(x_user_id: Annotated[int | None, Header()] = None) -> int:
    """Caller id from the X-User-Id header; authentication happens upstream."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def get_question_generator(request: Request) -> QuestionGenerator | None:
    return getattr(request.app.state, "question_generator", None)


def get_usage_ledger(db: Annotated[AsyncSession, Depends(get_db)]) -> UsageLedger:
    return UsageLedger(db, get_settings())


def get_session_manager(
    db: Annotated[AsyncSession, Depends(get_db)],
    ledger: Annotated[UsageLedger, Depends(get_usage_ledger)],
    generator: Annotated[QuestionGenerator | None, Depends(get_question_generator)],
) -> QuizSessionManager:
    return QuizSessionManager(db, get_settings(), generator=generator, ledger=ledger)


def get_attempt_scorer(db: Annotated[AsyncSession, Depends(get_db)]) -> AttemptScorer:
    return AttemptScorer(db, get_settings())
