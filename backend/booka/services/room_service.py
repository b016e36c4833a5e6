"""Room directory: lookups, search, admin CRUD and availability checks."""

import logging
import math
import uuid
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booka.exceptions import RoomNotFound, ValidationError
from booka.models.booking import Booking
from booka.models.room import Room, RoomStatus
from booka.schemas.room import AvailabilityResponse, RoomListResponse, RoomSearchItem
from booka.services.availability import active_overlap, count_conflicting_bookings
from booka.services.pricing import compute_total, count_nights, validate_stay

logger = logging.getLogger(__name__)


def parse_amenities(raw: str | None) -> list[str]:
    """Split a comma-separated amenity filter into clean, unique names."""
    if not raw:
        return []
    names: list[str] = []
    for part in raw.split(","):
        name = part.strip().lower()
        if name and name not in names:
            names.append(name)
    return names


async def find_room_by_id(db: AsyncSession, room_id: uuid.UUID) -> Room:
    """Return the room or raise ``RoomNotFound``."""
    room = await db.get(Room, room_id)
    if room is None:
        raise RoomNotFound()
    return room


async def search_rooms(
    db: AsyncSession,
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    location: str | None = None,
    capacity: int | None = None,
    amenities: str | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    page: int = 1,
    limit: int = 20,
) -> RoomListResponse:
    """Search available rooms.

    Every listed amenity must be ``true`` on the room. When a stay is given,
    rooms with an active overlapping booking are excluded in SQL so the
    total stays accurate, and each item carries the stay's estimated price.

    Raises:
        ValidationError: Only one of the dates given, or a non-positive range.
    """
    if (date_from is None) != (date_to is None):
        raise ValidationError("date_from and date_to must be provided together")
    if date_from is not None and date_to is not None:
        validate_stay(date_from, date_to)
        if date_from < date.today():
            return RoomListResponse(items=[], total=0, page=page, limit=limit, total_pages=0)

    conditions = [Room.status == RoomStatus.AVAILABLE]
    if location:
        conditions.append(Room.location.ilike(f"%{location.strip()}%"))
    if capacity is not None:
        conditions.append(Room.capacity >= capacity)
    if min_price is not None:
        conditions.append(Room.price_per_night >= min_price)
    if max_price is not None:
        conditions.append(Room.price_per_night <= max_price)
    for amenity in parse_amenities(amenities):
        conditions.append(Room.amenities[amenity].as_boolean())
    if date_from is not None and date_to is not None:
        has_conflict = (
            select(Booking.id)
            .where(Booking.room_id == Room.id, active_overlap(date_from, date_to))
            .exists()
        )
        conditions.append(~has_conflict)

    total_result = await db.execute(select(func.count()).select_from(Room).where(*conditions))
    total = total_result.scalar_one()

    result = await db.execute(
        select(Room)
        .where(*conditions)
        .order_by(Room.price_per_night.asc(), Room.name.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rooms = list(result.scalars().all())

    nights = count_nights(date_from, date_to) if date_from is not None and date_to is not None else None
    items = []
    for room in rooms:
        item = RoomSearchItem.model_validate(room)
        if nights is not None:
            item.nights = nights
            item.estimated_total_price = compute_total(nights, room.price_per_night)
        items.append(item)

    return RoomListResponse(
        items=items,
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


async def create_room(db: AsyncSession, data: dict[str, Any]) -> Room:
    room = Room(**data)
    db.add(room)
    await db.flush()
    await db.refresh(room)
    logger.info("Created room %s (%s)", room.id, room.name)
    return room


async def update_room(db: AsyncSession, room_id: uuid.UUID, data: dict[str, Any]) -> Room:
    """Apply a partial update. Keys absent from ``data`` are left untouched."""
    room = await find_room_by_id(db, room_id)
    for field, value in data.items():
        setattr(room, field, value)
    await db.flush()
    await db.refresh(room)
    logger.info("Updated room %s: %s", room.id, ", ".join(sorted(data)) or "no changes")
    return room


async def check_availability(
    db: AsyncSession,
    room_id: uuid.UUID,
    date_from: date | str,
    date_to: date | str,
) -> AvailabilityResponse:
    """Answer whether a room is free for a stay. Takes no locks.

    A stay starting in the past is never available. The answer is advisory:
    only ``BookingService.create_booking`` decides under a lock.

    Raises:
        ValidationError: Malformed dates or ``date_to <= date_from``.
        RoomNotFound: Unknown room.
    """
    start, end = validate_stay(date_from, date_to)
    room = await find_room_by_id(db, room_id)

    response = AvailabilityResponse(
        room_id=room.id,
        room_name=room.name,
        date_from=start,
        date_to=end,
        available=False,
        conflicting_bookings=0,
    )
    if start < date.today():
        return response

    conflicts = await count_conflicting_bookings(db, room.id, start, end)
    response.conflicting_bookings = conflicts
    response.available = conflicts == 0 and room.is_bookable
    if response.available:
        response.nights = count_nights(start, end)
        response.total_price = compute_total(response.nights, room.price_per_night)
    return response
