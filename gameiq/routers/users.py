"""User routes: registration and subscription tier."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gameiq.db.session import get_db
from gameiq.routers.deps import raise_for_error
from gameiq.schemas.user import SubscriptionUpdateSchema, UserCreateSchema, UserOutSchema
from gameiq.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserOutSchema, status_code=201)
async def register_user(body: UserCreateSchema, db: Annotated[AsyncSession, Depends(get_db)]):
    result = await user_service.create_user(db, body.email, body.display_name, body.subscription_tier)
    if not result.ok:
        raise_for_error(result.error)
    return UserOutSchema.model_validate(result.value)


@router.get("/{user_id}", response_model=UserOutSchema)
async def get_user(user_id: int, db: Annotated[AsyncSession, Depends(get_db)]):
    result = await user_service.get_user(db, user_id)
    if not result.ok:
        raise_for_error(result.error)
    return UserOutSchema.model_validate(result.value)


@router.put("/{user_id}/subscription", response_model=UserOutSchema)
async def update_subscription(
    user_id: int,
    body: SubscriptionUpdateSchema,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await user_service.set_subscription(db, user_id, body.subscription_tier)
    if not result.ok:
        raise_for_error(result.error)
    return UserOutSchema.model_validate(result.value)
