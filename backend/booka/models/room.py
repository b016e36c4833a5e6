"""Room model: bookable units listed in the directory."""

import enum
from decimal import Decimal

from sqlalchemy import JSON, CheckConstraint, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from booka.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class RoomStatus(enum.StrEnum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class Room(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A room that guests can reserve for a range of nights."""

    __tablename__ = "rooms"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    location: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_night: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    amenities: Mapped[dict[str, bool]] = mapped_column(JSON, default=dict, nullable=False)  # {"wifi": true, ...}
    images: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=RoomStatus.AVAILABLE,
        nullable=False,
        index=True,
    )

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_rooms_capacity_positive"),
        CheckConstraint("price_per_night >= 0", name="ck_rooms_price_non_negative"),
        CheckConstraint("status IN ('available', 'unavailable')", name="ck_rooms_status"),
    )

    @property
    def is_bookable(self) -> bool:
        return self.status == RoomStatus.AVAILABLE

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, name={self.name!r}, status={self.status!r})>"
