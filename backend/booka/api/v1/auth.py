"""Auth API router: register, login, refresh, logout."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from booka.api.deps import get_current_active_user, get_db, get_notification_sender
from booka.models.user import User
from booka.notifications.sender import NotificationSender
from booka.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from booka.services import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# POST /register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationSender = Depends(get_notification_sender),
) -> AuthResponse:
    """Register a new user with email and password, then send a welcome email."""
    user, tokens = await auth_service.register(db, email=body.email, password=body.password, name=body.name)
    background_tasks.add_task(notifier.send_welcome, user.email, user.name)

    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**tokens),
    )


# ---------------------------------------------------------------------------
# POST /login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    """Authenticate with email and password."""
    user = await auth_service.authenticate(db, email=body.email, password=body.password)
    tokens = await auth_service.issue_tokens(db, user)

    return AuthResponse(
        user=UserResponse.model_validate(user),
        tokens=TokenResponse(**tokens),
    )


# ---------------------------------------------------------------------------
# POST /refresh
# ---------------------------------------------------------------------------


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    """Exchange a valid refresh token for a new pair. The old token stops working."""
    tokens = await auth_service.rotate_refresh_token(db, body.refresh_token)
    return TokenResponse(**tokens)


# ---------------------------------------------------------------------------
# POST /logout
# ---------------------------------------------------------------------------


@router.post("/logout", response_model=MessageResponse)
async def logout(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MessageResponse:
    """Revoke all of the current user's refresh tokens."""
    await auth_service.logout(db, current_user.id)
    return MessageResponse(message="Logged out")
