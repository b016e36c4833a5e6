"""SQLAlchemy models for Booka.

All models are imported here so that Alembic's autogenerate can discover
them via Base.metadata. If you add a new model, import it in this file.
"""

from booka.models.booking import Booking, BookingStatus
from booka.models.refresh_token import RefreshToken
from booka.models.room import Room, RoomStatus
from booka.models.user import User, UserRole

__all__ = [
    "Booking",
    "BookingStatus",
    "RefreshToken",
    "Room",
    "RoomStatus",
    "User",
    "UserRole",
]
