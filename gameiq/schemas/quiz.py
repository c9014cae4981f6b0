"""Pydantic schemas for quiz sessions and attempts."""
from datetime import datetime

from pydantic import BaseModel, Field

from gameiq.models.quiz_session import QuizType
from gameiq.schemas.question import QuestionOutSchema, QuestionReviewSchema


class QuizRequestSchema(BaseModel):
    sport: str = Field(min_length=1, max_length=50)
    position: str = Field(min_length=1, max_length=50)


class QuizSessionOutSchema(BaseModel):
    id: int
    quiz_type: QuizType
    sport: str
    position: str
    sequence_number: int
    session_name: str
    question_ids: list[int]
    question_count: int
    is_completed: bool
    best_score: int
    best_attempt_id: int | None
    total_attempts: int
    passed: bool

    class Config:
        from_attributes = True


class AttemptStartOutSchema(BaseModel):
    session: QuizSessionOutSchema
    questions: list[QuestionOutSchema]
    attempt_number: int  # advisory; the real number is assigned on submit


class AnswerSchema(BaseModel):
    question_id: int
    selected_answer: str = Field(min_length=1, max_length=10)
    time_taken: int | None = Field(default=None, ge=0)


class SubmitAttemptSchema(BaseModel):
    answers: list[AnswerSchema]
    total_time_taken: int | None = Field(default=None, ge=0)


class AttemptOutSchema(BaseModel):
    id: int
    quiz_session_id: int
    attempt_number: int
    total_score: int
    correct_answers: int
    total_questions: int
    time_taken: int | None
    completed_at: datetime

    class Config:
        from_attributes = True


class QuestionResultOutSchema(BaseModel):
    question_number: int
    question_id: int
    answer_selected: str
    is_correct: bool
    time_taken: int | None
    question: QuestionReviewSchema | None = None


class AttemptDetailOutSchema(BaseModel):
    attempt: AttemptOutSchema
    question_results: list[QuestionResultOutSchema]


class SessionSummaryOutSchema(BaseModel):
    session: QuizSessionOutSchema
    attempts: list[AttemptOutSchema]
    total_attempts: int
    best_score: int
    latest_score: int
    passed: bool


class ProgressionOutSchema(BaseModel):
    sport: str
    position: str
    can_generate: bool
    stage: str
    generated_index: int
