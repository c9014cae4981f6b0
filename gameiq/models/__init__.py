from gameiq.models.user import User, SubscriptionTier
from gameiq.models.question import QuizQuestion, QuizDifficulty, QuestionSource
from gameiq.models.quiz_session import QuizSession, QuizType, PASS_THRESHOLD
from gameiq.models.attempt import QuizSessionAttempt, QuizSessionQuestionResult
from gameiq.models.usage import AIUsageRecord, AIFeature

__all__ = [
    "User",
    "SubscriptionTier",
    "QuizQuestion",
    "QuizDifficulty",
    "QuestionSource",
    "QuizSession",
    "QuizType",
    "PASS_THRESHOLD",
    "QuizSessionAttempt",
    "QuizSessionQuestionResult",
    "AIUsageRecord",
    "AIFeature",
]
