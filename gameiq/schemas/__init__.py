from gameiq.schemas.question import QuestionOutSchema, QuestionRecordSchema, CatalogFileSchema
from gameiq.schemas.quiz import (
    AttemptDetailOutSchema,
    AttemptOutSchema,
    AttemptStartOutSchema,
    QuizSessionOutSchema,
    SessionSummaryOutSchema,
    SubmitAttemptSchema,
)
from gameiq.schemas.usage import BudgetOutSchema, UsageSummaryOutSchema

__all__ = [
    "QuestionOutSchema",
    "QuestionRecordSchema",
    "CatalogFileSchema",
    "AttemptDetailOutSchema",
    "AttemptOutSchema",
    "AttemptStartOutSchema",
    "QuizSessionOutSchema",
    "SessionSummaryOutSchema",
    "SubmitAttemptSchema",
    "BudgetOutSchema",
    "UsageSummaryOutSchema",
]
