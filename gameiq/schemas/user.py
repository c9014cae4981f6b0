"""Pydantic schemas for users."""
from datetime import datetime

from pydantic import BaseModel, Field

from gameiq.models.user import SubscriptionTier


class UserCreateSchema(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    display_name: str | None = Field(default=None, max_length=100)
    subscription_tier: SubscriptionTier = SubscriptionTier.NONE


class SubscriptionUpdateSchema(BaseModel):
    subscription_tier: SubscriptionTier


class UserOutSchema(BaseModel):
    id: int
    email: str
    display_name: str | None
    subscription_tier: SubscriptionTier
    created_at: datetime | None = None

    class Config:
        from_attributes = True
