"""Bookings API router.

Ownership rule: a user can only see and cancel their own bookings.
Creation and cancellation go through ``BookingService``, which owns the
transaction and commits before any email is queued.
"""

import asyncio
import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from booka.api.deps import get_booking_service, get_current_active_user
from booka.config import settings
from booka.exceptions import TransientDatabaseError
from booka.models.booking import Booking
from booka.models.user import User
from booka.schemas.booking import (
    BookingCreate,
    BookingDetailResponse,
    BookingListResponse,
    BookingResponse,
)
from booka.services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.post(
    "",
    response_model=BookingDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a room",
)
async def create_booking(
    body: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Reserve a room for the current user.

    Lock timeouts and deadlocks are retried a few times. Domain failures
    (conflict, unavailable room, unknown room) are returned immediately.
    """
    user_id = current_user.id
    max_attempts = max(1, settings.booking_max_attempts)
    for attempt in range(1, max_attempts + 1):
        try:
            return await service.create_booking(user_id, body.room_id, body.check_in, body.check_out)
        except TransientDatabaseError:
            if attempt == max_attempts:
                raise
            logger.warning("Booking attempt %d/%d hit a transient error; retrying", attempt, max_attempts)
            await asyncio.sleep(settings.booking_retry_backoff_seconds * attempt)
    raise TransientDatabaseError()


@router.get("", response_model=BookingListResponse, summary="List my bookings")
async def list_bookings(
    status_filter: str | None = Query(
        None,
        alias="status",
        pattern="^(pending|confirmed|cancelled|completed)$",
        description="Filter by booking status",
    ),
    date_from: date | None = Query(None, description="Window start (requires date_to)"),
    date_to: date | None = Query(None, description="Window end (requires date_from)"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user),
) -> dict:
    return await service.list_bookings(
        current_user.id,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )


@router.get("/{booking_id}", response_model=BookingDetailResponse, summary="Get one of my bookings")
async def get_booking(
    booking_id: uuid.UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    return await service.get_booking(booking_id, current_user.id)


@router.delete("/{booking_id}", response_model=BookingResponse, summary="Cancel a booking")
async def cancel_booking(
    booking_id: uuid.UUID,
    reason: str | None = Query(None, max_length=1000, description="Why the booking is cancelled"),
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user),
) -> Booking:
    """Cancel the current user's booking. The row is kept with status ``cancelled``."""
    return await service.cancel_booking(booking_id, current_user.id, reason=reason)
