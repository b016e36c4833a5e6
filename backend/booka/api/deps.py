"""Shared API dependencies: single import point for all routers.

Re-exports database session and authentication dependencies so that router
modules can import everything they need from one place::

    from booka.api.deps import get_db, get_current_active_user
"""

from fastapi import BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booka.auth.dependencies import (
    get_current_active_user,
    get_current_user,
    require_admin,
)
from booka.database import get_db
from booka.notifications.sender import NotificationSender, get_notification_sender
from booka.services.booking_service import BookingService


def get_booking_service(
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    notifier: NotificationSender = Depends(get_notification_sender),
) -> BookingService:
    """Build a request-scoped ``BookingService`` that emails via background tasks."""
    return BookingService(db, notifier=notifier, background_tasks=background_tasks)


__all__ = [
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "require_admin",
    "get_notification_sender",
    "get_booking_service",
]
