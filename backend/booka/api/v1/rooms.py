"""Rooms API router: public search and availability, admin management."""

import uuid
from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booka.api.deps import get_db, require_admin
from booka.models.room import Room
from booka.models.user import User
from booka.schemas.room import (
    AvailabilityResponse,
    RoomCreate,
    RoomListResponse,
    RoomResponse,
    RoomUpdate,
)
from booka.services import room_service

router = APIRouter(prefix="/api/v1/rooms", tags=["rooms"])


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=RoomListResponse, summary="Search available rooms")
async def search_rooms(
    date_from: date | None = Query(None, description="Check-in date (requires date_to)"),
    date_to: date | None = Query(None, description="Check-out date (requires date_from)"),
    location: str | None = Query(None, max_length=255, description="Case-insensitive substring"),
    capacity: int | None = Query(None, ge=1, description="Minimum number of guests"),
    amenities: str | None = Query(None, description="Comma-separated, all required, e.g. wifi,pool"),
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> RoomListResponse:
    """Return available rooms matching every given filter."""
    return await room_service.search_rooms(
        db,
        date_from=date_from,
        date_to=date_to,
        location=location,
        capacity=capacity,
        amenities=amenities,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
    )


@router.get("/{room_id}", response_model=RoomResponse, summary="Get room detail")
async def get_room(room_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> Room:
    return await room_service.find_room_by_id(db, room_id)


@router.get(
    "/{room_id}/availability",
    response_model=AvailabilityResponse,
    summary="Check whether a room is free for a stay",
)
async def check_availability(
    room_id: uuid.UUID,
    date_from: date = Query(..., description="Check-in date"),
    date_to: date = Query(..., description="Check-out date (exclusive)"),
    db: AsyncSession = Depends(get_db),
) -> AvailabilityResponse:
    """Advisory check. A later booking attempt can still lose to a concurrent one."""
    return await room_service.check_availability(db, room_id, date_from, date_to)


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=RoomResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a room",
)
async def create_room(
    body: RoomCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> Room:
    return await room_service.create_room(db, body.model_dump())


@router.put("/{room_id}", response_model=RoomResponse, summary="Update a room")
async def update_room(
    room_id: uuid.UUID,
    body: RoomUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> Room:
    """Partially update a room. Omitted fields keep their current values."""
    return await room_service.update_room(db, room_id, body.model_dump(exclude_unset=True))
