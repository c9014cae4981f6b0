"""User registration and subscription changes."""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gameiq.core.errors import ErrorKind, Result
from gameiq.models.user import SubscriptionTier, User

logger = logging.getLogger(__name__)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


async def create_user(
    db: AsyncSession,
    email: str,
    display_name: str | None = None,
    subscription_tier: SubscriptionTier = SubscriptionTier.NONE,
) -> Result[User]:
    email_norm = normalize_email(email)
    if "@" not in email_norm:
        return Result.failure(ErrorKind.VALIDATION, f"Invalid email: {email!r}")

    existing = await db.execute(select(User).where(User.email == email_norm))
    if existing.scalar_one_or_none() is not None:
        return Result.failure(ErrorKind.VALIDATION, f"Email already registered: {email_norm}")

    user = User(email=email_norm, display_name=display_name, subscription_tier=subscription_tier)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return Result.failure(ErrorKind.VALIDATION, f"Email already registered: {email_norm}")
    await db.refresh(user)
    logger.info("Registered user %d (%s)", user.id, subscription_tier.value)
    return Result.success(user)


async def get_user(db: AsyncSession, user_id: int) -> Result[User]:
    user = await db.get(User, user_id)
    if user is None:
        return Result.failure(ErrorKind.NOT_FOUND, f"User not found: {user_id}")
    return Result.success(user)


async def set_subscription(db: AsyncSession, user_id: int, tier: SubscriptionTier) -> Result[User]:
    user = await db.get(User, user_id)
    if user is None:
        return Result.failure(ErrorKind.NOT_FOUND, f"User not found: {user_id}")
    previous = user.subscription_tier
    user.subscription_tier = tier
    await db.commit()
    logger.info("User %d subscription %s -> %s", user_id, previous.value, tier.value)
    return Result.success(user)
