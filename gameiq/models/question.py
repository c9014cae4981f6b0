"""Catalog question: one multiple-choice game situation for a sport/position."""
import enum
import json

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func

from gameiq.db.session import Base


class QuizDifficulty(str, enum.Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class QuestionSource(str, enum.Enum):
    CATALOG = "CATALOG"  # imported from a core JSON file
    GENERATED = "GENERATED"  # imported from the AI generator


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"
    __table_args__ = (
        UniqueConstraint("sport", "position", "external_id", name="uq_quiz_questions_external_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    sport = Column(String(50), nullable=False, index=True)
    position = Column(String(50), nullable=False, index=True)
    category = Column(String(100), nullable=False)
    external_id = Column(String(100), nullable=False)  # id from the source file / generator
    scenario = Column(Text, nullable=False)
    question = Column(Text, nullable=False)
    # options: JSON array of {id, text}, exactly four
    options_json = Column(Text, nullable=False)
    correct_option_id = Column(String(10), nullable=False)
    explanation = Column(Text, nullable=False)
    difficulty = Column(
        Enum(QuizDifficulty, name="quiz_difficulty", native_enum=False, length=20),
        nullable=False,
    )
    tags_json = Column(Text, nullable=False, default="[]")
    source = Column(
        Enum(QuestionSource, name="question_source", native_enum=False, length=16),
        nullable=False,
        default=QuestionSource.CATALOG,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)

    @property
    def options(self) -> list[dict]:
        return json.loads(self.options_json)

    @property
    def tags(self) -> list[str]:
        return json.loads(self.tags_json or "[]")
