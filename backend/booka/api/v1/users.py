"""Current-user profile endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booka.api.deps import get_current_active_user, get_db
from booka.models.user import User
from booka.schemas.auth import UserResponse
from booka.schemas.user import UserUpdate
from booka.services.user_service import update_user

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_active_user)) -> UserResponse:
    """Return the currently authenticated user's profile."""
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UserResponse:
    """Update the current user's name and/or email."""
    user = await update_user(db, current_user, name=body.name, email=body.email)
    return UserResponse.model_validate(user)
