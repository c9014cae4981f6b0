"""SQLAlchemy declarative base and model imports for Alembic."""
from gameiq.db.session import Base

# Import all models so Alembic can see them
from gameiq.models.user import User  # noqa: F401
from gameiq.models.question import QuizQuestion  # noqa: F401
from gameiq.models.quiz_session import QuizSession  # noqa: F401
from gameiq.models.attempt import QuizSessionAttempt, QuizSessionQuestionResult  # noqa: F401
from gameiq.models.usage import AIUsageRecord  # noqa: F401

__all__ = [
    "Base",
    "User",
    "QuizQuestion",
    "QuizSession",
    "QuizSessionAttempt",
    "QuizSessionQuestionResult",
    "AIUsageRecord",
]
