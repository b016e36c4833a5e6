"""Seed the database with sample rooms, a demo guest and an admin.

Bookings are created through ``BookingService`` so they pass the same
locking and pricing path as real requests.

Run from the backend directory:
    python -m scripts.seed_data
"""

import asyncio
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from booka.database import async_session_factory, engine
from booka.models.room import Room
from booka.models.user import User, UserRole
from booka.services.booking_service import BookingService
from booka.services.user_service import create_user

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_GUEST = {
    "email": "guest@booka.com",
    "password": "guest1234",
    "name": "Demo Guest",
}

DEMO_ADMIN = {
    "email": "admin@booka.com",
    "password": "admin1234",
    "name": "Booka Admin",
}

ROOMS = [
    {
        "name": "Harbour View Double",
        "description": "Bright double room overlooking the marina, with a small balcony.",
        "location": "Lisbon, Portugal",
        "capacity": 2,
        "price_per_night": Decimal("95.00"),
        "amenities": {"wifi": True, "ac": True, "balcony": True, "breakfast": False},
        "images": ["https://images.booka.example/harbour-double-1.jpg"],
    },
    {
        "name": "Old Town Loft",
        "description": "Top-floor loft in a restored 19th century building, walkable to the cathedral.",
        "location": "Porto, Portugal",
        "capacity": 3,
        "price_per_night": Decimal("120.00"),
        "amenities": {"wifi": True, "kitchen": True, "ac": False},
        "images": ["https://images.booka.example/old-town-loft-1.jpg"],
    },
    {
        "name": "Garden Family Suite",
        "description": "Two connected rooms opening onto a private garden. Cot on request.",
        "location": "Sintra, Portugal",
        "capacity": 5,
        "price_per_night": Decimal("185.50"),
        "amenities": {"wifi": True, "parking": True, "garden": True, "breakfast": True},
        "images": [
            "https://images.booka.example/garden-suite-1.jpg",
            "https://images.booka.example/garden-suite-2.jpg",
        ],
    },
    {
        "name": "Cliffside Studio",
        "description": "Compact studio above the beach. Currently closed for renovation.",
        "location": "Lagos, Portugal",
        "capacity": 2,
        "price_per_night": Decimal("80.00"),
        "amenities": {"wifi": False, "sea_view": True},
        "images": [],
        "status": "unavailable",
    },
]


async def seed() -> None:
    """Populate an empty database. Does nothing if the admin already exists."""
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.email == DEMO_ADMIN["email"]))
        if result.scalar_one_or_none() is not None:
            print(f"Admin '{DEMO_ADMIN['email']}' already exists; nothing to do.")
            return

        admin = await create_user(session, role=UserRole.ADMIN, **DEMO_ADMIN)
        guest = await create_user(session, **DEMO_GUEST)
        guest_id = guest.id
        print(f"Created admin: {admin.email} (id={admin.id})")
        print(f"Created guest: {guest.email} (id={guest_id})")

        rooms: list[Room] = []
        for room_data in ROOMS:
            room = Room(**room_data)
            session.add(room)
            await session.flush()
            rooms.append(room)
            print(f"   {room.name} - {room.location} ({room.price_per_night}/night, {room.status})")
        room_ids = [room.id for room in rooms]
        await session.commit()

        service = BookingService(session)
        start = date.today() + timedelta(days=14)
        for offset, room_id in enumerate(room_ids[:3]):
            check_in = start + timedelta(days=offset * 3)
            booking = await service.create_booking(guest_id, room_id, check_in, check_in + timedelta(days=2 + offset))
            print(f"   Booking {booking.id}: {booking.check_in} -> {booking.check_out}, total {booking.total_price}")

        print()
        print("=" * 60)
        print("Seed Summary")
        print("=" * 60)
        print(f"   Users:    2 ({DEMO_ADMIN['email']}, {DEMO_GUEST['email']})")
        print(f"   Rooms:    {len(room_ids)}")
        print("   Bookings: 3")
        print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
