"""User model: identity plus the subscription tier read by the usage ledger."""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from gameiq.db.session import Base


class SubscriptionTier(str, enum.Enum):
    NONE = "NONE"
    BASIC = "BASIC"
    PREMIUM = "PREMIUM"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(100), nullable=True)
    subscription_tier = Column(
        Enum(SubscriptionTier, name="subscription_tier", native_enum=False, length=16),
        nullable=False,
        default=SubscriptionTier.NONE,
    )
    # bumped by every budget check; the UPDATE is the per-user ledger lock
    ledger_version = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=True)

    quiz_sessions = relationship("QuizSession", back_populates="user", order_by="QuizSession.id")
    usage_records = relationship("AIUsageRecord", back_populates="user")
