"""Best-effort notification sender.

Sending never raises: every failure is retried a bounded number of times,
then logged. Callers treat the boolean result as informational only.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from functools import lru_cache

from booka.config import settings
from booka.models.booking import Booking
from booka.models.room import Room
from booka.notifications.templates import EmailMessage, render
from booka.notifications.transports import EmailTransport, build_transport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingEmailDetails:
    """Snapshot of a booking taken before the session moves on."""

    booking_id: str
    guest_name: str
    room_name: str
    location: str
    check_in: date
    check_out: date
    nights: int
    total_price: Decimal
    reason: str | None = None

    @classmethod
    def from_booking(cls, booking: Booking, room: Room, guest_name: str) -> "BookingEmailDetails":
        return cls(
            booking_id=str(booking.id),
            guest_name=guest_name,
            room_name=room.name,
            location=room.location,
            check_in=booking.check_in,
            check_out=booking.check_out,
            nights=booking.nights,
            total_price=booking.total_price,
            reason=booking.cancellation_reason,
        )

    def template_vars(self) -> dict[str, object]:
        return {
            "booking_id": self.booking_id,
            "guest_name": self.guest_name,
            "room_name": self.room_name,
            "location": self.location,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "total_price": f"{self.total_price:.2f}",
            "reason": self.reason or "No reason given",
        }


class NotificationSender:
    """Renders templates and pushes them through a transport with retries."""

    def __init__(
        self,
        transport: EmailTransport,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
    ) -> None:
        self.transport = transport
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds

    async def send_booking_confirmation(self, email: str, details: BookingEmailDetails) -> bool:
        return await self._send_template("booking_confirmation", email, details.template_vars())

    async def send_booking_cancellation(self, email: str, details: BookingEmailDetails) -> bool:
        return await self._send_template("booking_cancellation", email, details.template_vars())

    async def send_welcome(self, email: str, name: str) -> bool:
        return await self._send_template("welcome", email, {"guest_name": name})

    async def _send_template(self, template: str, email: str, template_vars: dict[str, object]) -> bool:
        try:
            message = render(template, to=email, **template_vars)
        except Exception:
            logger.exception("Failed to render %s email for <%s>", template, email)
            return False
        return await self.deliver(message)

    async def deliver(self, message: EmailMessage) -> bool:
        """Send ``message``, retrying with linear backoff. Returns delivery success."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.transport.send(message)
                return True
            except Exception as exc:
                if attempt == self.max_attempts:
                    logger.exception(
                        "Giving up on %s email to <%s> after %d attempts",
                        message.template,
                        message.to,
                        attempt,
                    )
                    return False
                logger.warning(
                    "Email attempt %d/%d for <%s> failed: %s",
                    attempt,
                    self.max_attempts,
                    message.to,
                    exc,
                )
                await asyncio.sleep(self.backoff_seconds * attempt)
        return False


@lru_cache
def get_notification_sender() -> NotificationSender:
    """FastAPI dependency returning the process-wide sender."""
    return NotificationSender(
        build_transport(),
        max_attempts=settings.email_max_attempts,
        backoff_seconds=settings.email_backoff_seconds,
    )
