"""Pydantic schemas for catalog and generated question records."""
from pydantic import BaseModel, Field, field_validator, model_validator

from gameiq.models.question import QuizDifficulty

DIFFICULTIES = {d.value for d in QuizDifficulty}


class OptionSchema(BaseModel):
    id: str = Field(min_length=1, max_length=10)
    text: str = Field(min_length=1)


class QuestionRecordSchema(BaseModel):
    """One well-formed question as found in a core JSON file or generator output."""

    id: str = Field(min_length=1)
    scenario: str = Field(min_length=1)
    question: str = Field(min_length=1)
    options: list[OptionSchema]
    correct: str
    explanation: str = Field(min_length=1)
    difficulty: str
    tags: list[str] = []
    category_hint: str | None = Field(default=None, alias="categoryHint")

    model_config = {"populate_by_name": True}

    @field_validator("difficulty")
    @classmethod
    def _known_difficulty(cls, v: str) -> str:
        if v.upper() not in DIFFICULTIES:
            raise ValueError(f"unknown difficulty: {v}")
        return v

    @model_validator(mode="after")
    def _four_options_one_correct(self) -> "QuestionRecordSchema":
        ids = [o.id for o in self.options]
        if len(ids) != 4 or len(set(ids)) != 4:
            raise ValueError("exactly four distinct options are required")
        if self.correct not in ids:
            raise ValueError(f"correct option {self.correct!r} is not one of {ids}")
        return self


class CategoryFileSchema(BaseModel):
    description: str = ""
    questions: list[QuestionRecordSchema]


class CatalogFileSchema(BaseModel):
    """<sport>__<position>_core.json"""

    sport: str
    position: str
    categories: dict[str, CategoryFileSchema]


class QuestionOutSchema(BaseModel):
    """Question as issued to a player: no answer key."""

    id: int
    scenario: str
    question: str
    options: list[OptionSchema]
    difficulty: QuizDifficulty
    tags: list[str]

    class Config:
        from_attributes = True


class QuestionReviewSchema(QuestionOutSchema):
    """Question with its answer key, for attempt review."""

    correct_option_id: str
    explanation: str
