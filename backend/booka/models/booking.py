"""Booking model: a user's reservation of a room for a date range."""

import enum
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booka.database import Base, TimestampMixin, UUIDPrimaryKeyMixin

# Name of the partial unique index guarding active stays; violations of it
# are reported as date conflicts.
ACTIVE_STAY_INDEX = "uq_bookings_room_dates_active"

# PostgreSQL-only exclusion constraint created by the initial migration.
ACTIVE_STAY_EXCLUSION = "ex_bookings_room_no_overlap"


class BookingStatus(enum.StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# States that can still move to cancelled.
CANCELLABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A reservation of one room for the nights ``[check_in, check_out)``.

    Rows are never deleted: cancellation flips ``status`` and records an
    optional reason. ``total_price`` is fixed at creation time.
    """

    __tablename__ = "bookings"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    room_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("rooms.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)  # exclusive
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    room: Mapped["Room"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (
        CheckConstraint("check_out > check_in", name="ck_bookings_check_out_after_check_in"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="ck_bookings_status",
        ),
        Index("ix_bookings_room_dates", "room_id", "check_in", "check_out"),
        Index(
            ACTIVE_STAY_INDEX,
            "room_id",
            "check_in",
            "check_out",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, room_id={self.room_id}, user_id={self.user_id}, status={self.status})>"
