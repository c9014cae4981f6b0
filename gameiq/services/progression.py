"""Progression gate: may the user generate the next quiz in the chain?

The chain is CORE -> GENERATED #1 -> GENERATED #2 -> ... and each link is
unlocked only once the previous one shows ``passed``. Everything here is a pure
function of the session history; callers load the sessions.
"""
import enum
from collections.abc import Sequence
from dataclasses import dataclass

from gameiq.models.quiz_session import QuizSession, QuizType


class ProgressionStage(str, enum.Enum):
    NO_CORE = "NO_CORE"
    CORE_UNPASSED = "CORE_UNPASSED"
    CORE_UNLOCKED = "CORE_UNLOCKED"
    GENERATED_UNPASSED = "GENERATED_UNPASSED"
    GENERATED_UNLOCKED = "GENERATED_UNLOCKED"


@dataclass(frozen=True)
class ProgressionState:
    stage: ProgressionStage
    generated_index: int = 0  # k of the latest GENERATED quiz, 0 if none

    @property
    def can_generate(self) -> bool:
        return self.stage in (ProgressionStage.CORE_UNLOCKED, ProgressionStage.GENERATED_UNLOCKED)


def _latest_generated(sessions: Sequence[QuizSession]) -> QuizSession | None:
    generated = [s for s in sessions if s.quiz_type == QuizType.GENERATED]
    if not generated:
        return None
    # most recently created; sequence_number grows with creation order
    return max(generated, key=lambda s: (s.sequence_number, s.id or 0))


def progression_state(sessions: Sequence[QuizSession]) -> ProgressionState:
    """State of one user/sport/position chain."""
    core = next((s for s in sessions if s.quiz_type == QuizType.CORE), None)
    if core is None:
        return ProgressionState(ProgressionStage.NO_CORE)
    if not core.passed:
        return ProgressionState(ProgressionStage.CORE_UNPASSED)

    latest = _latest_generated(sessions)
    if latest is None:
        return ProgressionState(ProgressionStage.CORE_UNLOCKED)
    if not latest.passed:
        return ProgressionState(ProgressionStage.GENERATED_UNPASSED, latest.sequence_number)
    return ProgressionState(ProgressionStage.GENERATED_UNLOCKED, latest.sequence_number)


def can_generate(sessions: Sequence[QuizSession]) -> bool:
    return progression_state(sessions).can_generate
