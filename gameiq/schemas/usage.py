"""Pydantic schemas for the AI usage ledger."""
from pydantic import BaseModel, Field

from gameiq.models.usage import AIFeature


class UsageRecordInSchema(BaseModel):
    feature: AIFeature = AIFeature.CHAT
    input_tokens: int = Field(ge=0)
    output_tokens: int = Field(ge=0)


class UsageRecordOutSchema(BaseModel):
    cost_cents: int
    spent_cents: int
    cap_cents: int


class BudgetOutSchema(BaseModel):
    tier: str
    spent_cents: int
    cap_cents: int
    remaining_cents: int


class UsageSummaryOutSchema(BaseModel):
    tier: str
    spent_cents: int
    cap_cents: int
    remaining_cents: int
    input_tokens: int
    output_tokens: int
    calls: int
