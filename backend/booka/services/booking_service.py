"""Booking transaction manager.

``create_booking`` is the only way a booking row comes into existence. It
serializes competing requests for the same room on a row lock held for the
whole check-then-insert sequence:

* PostgreSQL: ``SELECT ... FOR UPDATE`` on the room, bounded by
  ``SET LOCAL lock_timeout``. Bookings on different rooms never contend.
* SQLite (development and tests): every transaction starts with
  ``BEGIN IMMEDIATE`` (see ``booka.database``), so writers queue on the
  database lock instead.

The partial unique index and, on PostgreSQL, the exclusion constraint
reject any overlap that slips past the lock; such violations surface as
``DateConflict`` too.
"""

import asyncio
import logging
import math
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date

from fastapi import BackgroundTasks
from sqlalchemy import func, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booka.config import settings
from booka.exceptions import (
    AlreadyCancelled,
    BookaError,
    BookingNotFound,
    CannotCancelCompleted,
    DateConflict,
    Forbidden,
    RoomNotFound,
    RoomUnavailable,
    TransientDatabaseError,
    ValidationError,
)
from booka.models.booking import (
    ACTIVE_STAY_EXCLUSION,
    ACTIVE_STAY_INDEX,
    CANCELLABLE_STATUSES,
    Booking,
    BookingStatus,
)
from booka.models.room import Room
from booka.models.user import User
from booka.notifications.sender import BookingEmailDetails, NotificationSender
from booka.services.availability import count_conflicting_bookings
from booka.services.pricing import quote_stay, validate_stay

logger = logging.getLogger(__name__)

# SQLSTATEs worth retrying: serialization failure, deadlock, lock timeout
_TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


def is_transient_error(exc: DBAPIError) -> bool:
    """Return True if the failed statement can safely be retried."""
    if exc.connection_invalidated:
        return True
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in _TRANSIENT_SQLSTATES:
        return True
    message = str(orig or exc).lower()
    return "database is locked" in message or "deadlock detected" in message


def _is_overlap_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig or exc)
    if ACTIVE_STAY_INDEX in message or ACTIVE_STAY_EXCLUSION in message:
        return True
    # SQLite names the columns rather than the index
    return "UNIQUE constraint failed: bookings.room_id, bookings.check_in, bookings.check_out" in message


def _ensure_cancellable(status: str) -> None:
    if status == BookingStatus.CANCELLED:
        raise AlreadyCancelled()
    if status == BookingStatus.COMPLETED:
        raise CannotCancelCompleted()
    if status not in CANCELLABLE_STATUSES:
        raise ValidationError(f"Booking in status {status!r} cannot be cancelled")


class BookingService:
    """Creates, cancels and reads bookings.

    Args:
        db: Session owned by the caller. Write operations commit it.
        notifier: Sender for post-commit emails. ``None`` disables them.
        background_tasks: When given, emails are queued here. Otherwise each
            email runs as an ``asyncio`` task tracked in
            ``pending_notifications``; ``wait_for_notifications`` drains them.
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationSender | None = None,
        background_tasks: BackgroundTasks | None = None,
    ) -> None:
        self.db = db
        self.notifier = notifier
        self.background_tasks = background_tasks
        self.pending_notifications: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        """Commit on success; roll back and translate database errors otherwise."""
        try:
            yield
            await self.db.commit()
        except BookaError:
            await self.db.rollback()
            raise
        except IntegrityError as exc:
            await self.db.rollback()
            if _is_overlap_violation(exc):
                logger.info("Overlap rejected by database constraint")
                raise DateConflict() from exc
            raise
        except DBAPIError as exc:
            await self.db.rollback()
            if is_transient_error(exc):
                logger.warning("Transient database error: %s", exc.orig)
                raise TransientDatabaseError() from exc
            raise
        except Exception:
            await self.db.rollback()
            raise

    async def _lock_room(self, room_id: uuid.UUID) -> Room | None:
        """Load the room holding an exclusive lock until the transaction ends."""
        if self.db.get_bind().dialect.name == "postgresql":
            timeout_ms = int(settings.booking_lock_timeout_ms)
            await self.db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))
        result = await self.db.execute(
            select(Room)
            .where(Room.id == room_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_booking(
        self,
        user_id: uuid.UUID,
        room_id: uuid.UUID,
        check_in: date | str,
        check_out: date | str,
    ) -> Booking:
        """Reserve ``room_id`` for ``[check_in, check_out)`` as ``pending``.

        Raises:
            ValidationError: Malformed dates or ``check_out <= check_in``.
            RoomNotFound: Unknown room.
            RoomUnavailable: Room is not open for booking.
            DateConflict: An active booking overlaps the stay.
            TransientDatabaseError: Lock timeout, deadlock or lost connection.
                Nothing was written.
        """
        start, end = validate_stay(check_in, check_out)

        async with self._unit_of_work():
            room = await self._lock_room(room_id)
            if room is None:
                raise RoomNotFound()
            if not room.is_bookable:
                raise RoomUnavailable()

            if await count_conflicting_bookings(self.db, room.id, start, end):
                logger.info("Date conflict on room %s for %s..%s", room.id, start, end)
                raise DateConflict()

            quote = quote_stay(start, end, room.price_per_night)
            booking = Booking(
                user_id=user_id,
                room_id=room.id,
                check_in=quote.check_in,
                check_out=quote.check_out,
                total_price=quote.total_price,
                status=BookingStatus.PENDING,
            )
            self.db.add(booking)
            await self.db.flush()
            await self.db.refresh(booking)

        logger.info(
            "Created booking %s: room %s, %d night(s), total %s",
            booking.id,
            room.id,
            quote.nights,
            quote.total_price,
        )
        await self._notify(booking, room, cancelled=False)
        return booking

    async def cancel_booking(
        self,
        booking_id: uuid.UUID,
        user_id: uuid.UUID,
        reason: str | None = None,
    ) -> Booking:
        """Cancel the caller's booking.

        The status change is a single conditional UPDATE guarded by the
        status that was read, so a concurrent transition makes it match no
        row instead of overwriting the other change.

        Raises:
            BookingNotFound: Unknown booking.
            Forbidden: The booking belongs to someone else.
            AlreadyCancelled: The booking is already cancelled.
            CannotCancelCompleted: The stay is completed.
        """
        async with self._unit_of_work():
            booking = await self.db.get(Booking, booking_id, populate_existing=True)
            if booking is None:
                raise BookingNotFound()
            if booking.user_id != user_id:
                raise Forbidden()
            _ensure_cancellable(booking.status)

            result = await self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status == booking.status)
                .values(
                    status=BookingStatus.CANCELLED,
                    cancellation_reason=reason,
                    updated_at=func.now(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                current = await self.db.scalar(select(Booking.status).where(Booking.id == booking_id))
                _ensure_cancellable(current)
                # Moved between two cancellable states; let the caller retry
                raise TransientDatabaseError()

            await self.db.refresh(booking)

        logger.info("Cancelled booking %s", booking.id)
        await self._notify(booking, booking.room, cancelled=True)
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_booking(self, booking_id: uuid.UUID, user_id: uuid.UUID) -> Booking:
        """Return the caller's booking with its room.

        Raises:
            BookingNotFound: Unknown booking.
            Forbidden: The booking belongs to someone else.
        """
        booking = await self.db.get(Booking, booking_id, populate_existing=True)
        if booking is None:
            raise BookingNotFound()
        if booking.user_id != user_id:
            raise Forbidden()
        return booking

    async def list_bookings(
        self,
        user_id: uuid.UUID,
        status: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """Page through the caller's bookings.

        ``date_from``/``date_to`` select stays that touch the window and must
        be given together.
        """
        if (date_from is None) != (date_to is None):
            raise ValidationError("date_from and date_to must be provided together")
        if date_from is not None and date_to is not None and date_to < date_from:
            raise ValidationError("date_to must not be before date_from")

        conditions = [Booking.user_id == user_id]
        if status is not None:
            conditions.append(Booking.status == status)
        if date_from is not None and date_to is not None:
            conditions.append(Booking.check_in <= date_to)
            conditions.append(Booking.check_out >= date_from)

        total_result = await self.db.execute(select(func.count()).select_from(Booking).where(*conditions))
        total = total_result.scalar_one()

        result = await self.db.execute(
            select(Booking)
            .where(*conditions)
            .order_by(Booking.check_in.asc(), Booking.created_at.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return {
            "items": list(result.scalars().all()),
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        }

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def _notify(self, booking: Booking, room: Room, cancelled: bool) -> None:
        """Queue or send the post-commit email. Never raises."""
        if self.notifier is None:
            return
        try:
            user = await self.db.get(User, booking.user_id)
            if user is None:
                logger.warning("No user %s for booking %s; skipping email", booking.user_id, booking.id)
                return
            details = BookingEmailDetails.from_booking(booking, room, guest_name=user.name)
            email = user.email
        except Exception:
            logger.exception("Could not prepare email for booking %s", booking.id)
            return

        send = self.notifier.send_booking_cancellation if cancelled else self.notifier.send_booking_confirmation
        if self.background_tasks is not None:
            self.background_tasks.add_task(send, email, details)
        else:
            task = asyncio.create_task(send(email, details))
            self.pending_notifications.add(task)
            task.add_done_callback(self.pending_notifications.discard)

    async def wait_for_notifications(self) -> None:
        """Wait until every email scheduled by this service has finished."""
        if self.pending_notifications:
            await asyncio.gather(*self.pending_notifications)
