"""Attempt models: one scored run through a session, plus its per-question results."""
from sqlalchemy import Column, Integer, Boolean, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from gameiq.db.session import Base


class QuizSessionAttempt(Base):
    __tablename__ = "quiz_session_attempts"
    __table_args__ = (
        UniqueConstraint("quiz_session_id", "attempt_number", name="uq_attempts_session_number"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    quiz_session_id = Column(Integer, ForeignKey("quiz_sessions.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)  # 1-based, gap-free per session
    total_score = Column(Integer, nullable=False, default=0)  # 0-100, truncating
    correct_answers = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False)
    time_taken = Column(Integer, nullable=True)  # seconds
    completed_at = Column(DateTime(timezone=True), nullable=False)

    quiz_session = relationship("QuizSession", back_populates="attempts")
    question_results = relationship(
        "QuizSessionQuestionResult",
        back_populates="attempt",
        order_by="QuizSessionQuestionResult.question_number",
        cascade="all, delete-orphan",
    )


class QuizSessionQuestionResult(Base):
    __tablename__ = "quiz_session_question_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(Integer, ForeignKey("quiz_session_attempts.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("quiz_questions.id"), nullable=False)
    question_number = Column(Integer, nullable=False)  # 1..N, issue order
    answer_selected = Column(String(10), nullable=False)
    is_correct = Column(Boolean, nullable=False)
    time_taken = Column(Integer, nullable=True)

    attempt = relationship("QuizSessionAttempt", back_populates="question_results")
