"""QuizSession model: one unlockable quiz (CORE or GENERATED) for a user/sport/position."""
import enum
import json

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from gameiq.db.session import Base

PASS_THRESHOLD = 70


class QuizType(str, enum.Enum):
    CORE = "CORE"  # catalog quiz, must be passed before anything is generated
    GENERATED = "GENERATED"  # unlocked by passing the previous quiz in the chain


class QuizSession(Base):
    __tablename__ = "quiz_sessions"
    # sequence_number is 0 for CORE and k for GENERATED #k, so this also
    # enforces a single CORE session per user/sport/position
    __table_args__ = (
        UniqueConstraint("user_id", "sport", "position", "sequence_number", name="uq_quiz_sessions_sequence"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    quiz_type = Column(Enum(QuizType, name="quiz_type", native_enum=False, length=16), nullable=False)
    sport = Column(String(50), nullable=False)
    position = Column(String(50), nullable=False)
    sequence_number = Column(Integer, nullable=False, default=0)
    # snapshot of catalog question ids, in issue order; never rewritten
    question_ids_json = Column(Text, nullable=False)
    session_name = Column(String(200), nullable=False)

    is_completed = Column(Boolean, nullable=False, default=False)
    best_score = Column(Integer, nullable=False, default=0)  # 0-100
    best_attempt_id = Column(Integer, nullable=True)
    total_attempts = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)

    user = relationship("User", back_populates="quiz_sessions")
    attempts = relationship("QuizSessionAttempt", back_populates="quiz_session", order_by="QuizSessionAttempt.attempt_number")

    __mapper_args__ = {"version_id_col": version}

    @property
    def question_ids(self) -> list[int]:
        return json.loads(self.question_ids_json)

    @property
    def question_count(self) -> int:
        return len(self.question_ids)

    @property
    def passed(self) -> bool:
        return self.best_score >= PASS_THRESHOLD
