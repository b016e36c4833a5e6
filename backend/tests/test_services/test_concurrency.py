"""Concurrency tests for the booking transaction.

These run with real commits on separate connections, so they do not use
the rolled-back ``db_session`` fixture and clean up after themselves.
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from datetime import date, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from booka.auth.passwords import hash_password
from booka.exceptions import AlreadyCancelled, DateConflict, RoomUnavailable
from booka.models.booking import Booking
from booka.models.room import Room
from booka.models.user import User
from booka.services.booking_service import BookingService

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def committed(test_engine: AsyncEngine, setup_test_db) -> AsyncGenerator[dict, None]:
    """Commit a user and two rooms for real, and remove them afterwards."""
    async with AsyncSession(test_engine, expire_on_commit=False) as session:
        user = User(
            email=f"race-{uuid.uuid4().hex[:8]}@test.com",
            hashed_password=hash_password("testpass123"),
            name="Racer",
        )
        rooms = [
            Room(name=f"Race room {i}", location="Lisbon", capacity=2, price_per_night=Decimal("100.00"))
            for i in range(2)
        ]
        session.add_all([user, *rooms])
        await session.commit()
        ids = {"user_id": user.id, "room_ids": [room.id for room in rooms]}

    yield ids

    async with AsyncSession(test_engine) as session:
        await session.execute(delete(Booking).where(Booking.user_id == ids["user_id"]))
        await session.execute(delete(Room).where(Room.id.in_(ids["room_ids"])))
        await session.execute(delete(User).where(User.id == ids["user_id"]))
        await session.commit()


async def _attempt(engine: AsyncEngine, user_id, room_id, check_in: date, check_out: date):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        return await BookingService(session).create_booking(user_id, room_id, check_in, check_out)


async def _active_count(engine: AsyncEngine, room_id) -> int:
    async with AsyncSession(engine) as session:
        result = await session.execute(
            select(func.count())
            .select_from(Booking)
            .where(Booking.room_id == room_id, Booking.status != "cancelled")
        )
        return result.scalar_one()


class TestConcurrentCreate:
    async def test_identical_requests_yield_one_booking(self, test_engine: AsyncEngine, committed: dict):
        room_id = committed["room_ids"][0]
        check_in = date.today() + timedelta(days=40)
        check_out = check_in + timedelta(days=3)

        results = await asyncio.gather(
            *(_attempt(test_engine, committed["user_id"], room_id, check_in, check_out) for _ in range(5)),
            return_exceptions=True,
        )

        successes = [r for r in results if isinstance(r, Booking)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == 4
        assert all(isinstance(f, DateConflict) for f in failures), failures
        assert await _active_count(test_engine, room_id) == 1

    async def test_overlapping_ranges_yield_one_booking(self, test_engine: AsyncEngine, committed: dict):
        room_id = committed["room_ids"][0]
        base = date.today() + timedelta(days=60)
        # Every range contains the night of base + 4
        ranges = [(base + timedelta(days=i), base + timedelta(days=i + 5)) for i in range(5)]

        results = await asyncio.gather(
            *(_attempt(test_engine, committed["user_id"], room_id, ci, co) for ci, co in ranges),
            return_exceptions=True,
        )

        assert sum(isinstance(r, Booking) for r in results) == 1
        assert all(isinstance(r, (Booking, DateConflict)) for r in results), results
        assert await _active_count(test_engine, room_id) == 1

    async def test_different_rooms_all_succeed(self, test_engine: AsyncEngine, committed: dict):
        check_in = date.today() + timedelta(days=80)
        check_out = check_in + timedelta(days=2)

        results = await asyncio.gather(
            *(
                _attempt(test_engine, committed["user_id"], room_id, check_in, check_out)
                for room_id in committed["room_ids"]
            ),
            return_exceptions=True,
        )
        assert all(isinstance(r, Booking) for r in results), results

    async def test_room_closed_while_booking(self, test_engine: AsyncEngine, committed: dict):
        room_id = committed["room_ids"][1]
        async with AsyncSession(test_engine) as session:
            room = await session.get(Room, room_id)
            room.status = "unavailable"
            await session.commit()

        check_in = date.today() + timedelta(days=90)
        with pytest.raises(RoomUnavailable):
            await _attempt(test_engine, committed["user_id"], room_id, check_in, check_in + timedelta(days=1))


class TestConcurrentCancel:
    async def test_parallel_cancels_one_wins(self, test_engine: AsyncEngine, committed: dict):
        user_id = committed["user_id"]
        check_in = date.today() + timedelta(days=100)
        booking = await _attempt(test_engine, user_id, committed["room_ids"][0], check_in, check_in + timedelta(days=2))

        async def cancel(reason: str):
            async with AsyncSession(test_engine, expire_on_commit=False) as session:
                return await BookingService(session).cancel_booking(booking.id, user_id, reason=reason)

        results = await asyncio.gather(cancel("a"), cancel("b"), cancel("c"), return_exceptions=True)

        winners = [r for r in results if isinstance(r, Booking)]
        assert len(winners) == 1
        assert all(isinstance(r, (Booking, AlreadyCancelled)) for r in results), results

        async with AsyncSession(test_engine) as session:
            row = await session.get(Booking, booking.id)
            assert row.status == "cancelled"
            assert row.cancellation_reason == winners[0].cancellation_reason
