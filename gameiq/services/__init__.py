from gameiq.services.attempts import AttemptScorer, apply_attempt_result, compute_total_score
from gameiq.services.catalog import QuestionCatalog
from gameiq.services.progression import can_generate, progression_state
from gameiq.services.quiz_sessions import QuizSessionManager
from gameiq.services.seeding import seed_question_bank
from gameiq.services.usage import UsageLedger, compute_cost_cents

__all__ = [
    "AttemptScorer",
    "apply_attempt_result",
    "compute_total_score",
    "QuestionCatalog",
    "can_generate",
    "progression_state",
    "QuizSessionManager",
    "seed_question_bank",
    "UsageLedger",
    "compute_cost_cents",
]
