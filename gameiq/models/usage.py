"""AI usage record: one AI call, its token counts and its cost in cents."""
import enum

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from gameiq.db.session import Base


class AIFeature(str, enum.Enum):
    CHAT = "CHAT"
    QUIZ_GENERATION = "QUIZ_GENERATION"
    WORKOUT_GENERATION = "WORKOUT_GENERATION"


class AIUsageRecord(Base):
    __tablename__ = "ai_usage_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    feature = Column(Enum(AIFeature, name="ai_feature", native_enum=False, length=32), nullable=False)
    input_tokens = Column(Integer, nullable=False, default=0)
    output_tokens = Column(Integer, nullable=False, default=0)
    cost_cents = Column(Integer, nullable=False, default=0)
    # naive server-local time; the monthly window is computed in the same clock
    created_at = Column(DateTime, nullable=False, index=True)

    user = relationship("User", back_populates="usage_records")
