"""Overlap predicate shared by booking creation, availability and search.

Stays are half-open intervals ``[check_in, check_out)``: a stay ending on
the day another begins does not overlap it.
"""

import uuid
from datetime import date

from sqlalchemy import ColumnElement, and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booka.models.booking import Booking, BookingStatus


def dates_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Return True if ``[a_start, a_end)`` and ``[b_start, b_end)`` intersect."""
    return a_start < b_end and a_end > b_start


def active_overlap(check_in: date, check_out: date) -> ColumnElement[bool]:
    """SQL clause matching non-cancelled bookings that overlap the stay."""
    return and_(
        Booking.status != BookingStatus.CANCELLED,
        Booking.check_in < check_out,
        Booking.check_out > check_in,
    )


async def count_conflicting_bookings(
    db: AsyncSession,
    room_id: uuid.UUID,
    check_in: date,
    check_out: date,
) -> int:
    """Count active bookings on ``room_id`` that overlap the stay."""
    result = await db.execute(
        select(func.count())
        .select_from(Booking)
        .where(Booking.room_id == room_id, active_overlap(check_in, check_out))
    )
    return result.scalar_one()
