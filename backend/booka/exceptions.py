"""Domain exception hierarchy.

Services raise these instead of ``HTTPException`` so they stay usable
outside a request. ``booka.main`` maps every ``BookaError`` to a JSON
response of the form ``{"detail": ..., "code": ...}``.
"""

from fastapi import status


class BookaError(Exception):
    """Base class for all expected, typed failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    kind: str = "bad_request"
    message: str = "Bad request"

    def __init__(self, message: str | None = None, headers: dict[str, str] | None = None) -> None:
        self.message = message or self.message
        self.headers = headers
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# 404
# ---------------------------------------------------------------------------


class NotFoundError(BookaError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    kind = "not_found"
    message = "Resource not found"


class RoomNotFound(NotFoundError):
    code = "ROOM_NOT_FOUND"
    message = "Room not found"


class BookingNotFound(NotFoundError):
    code = "BOOKING_NOT_FOUND"
    message = "Booking not found"


class UserNotFound(NotFoundError):
    code = "USER_NOT_FOUND"
    message = "User not found"


# ---------------------------------------------------------------------------
# 409
# ---------------------------------------------------------------------------


class ConflictError(BookaError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    kind = "conflict"
    message = "Conflict"


class RoomUnavailable(ConflictError):
    code = "ROOM_UNAVAILABLE"
    message = "Room is not available"


class DateConflict(ConflictError):
    code = "DATE_CONFLICT"
    message = "Room is not available for the selected dates"


class AlreadyCancelled(ConflictError):
    code = "ALREADY_CANCELLED"
    message = "Booking is already cancelled"


class CannotCancelCompleted(ConflictError):
    code = "CANNOT_CANCEL_COMPLETED"
    message = "Cannot cancel a completed booking"


class EmailAlreadyRegistered(ConflictError):
    code = "EMAIL_TAKEN"
    message = "Email already registered"


# ---------------------------------------------------------------------------
# 401 / 403 / 422
# ---------------------------------------------------------------------------


class AuthenticationError(BookaError):
    """Credentials or token rejected. Carries a ``WWW-Authenticate`` header."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    kind = "unauthorized"
    message = "Invalid email or password"

    def __init__(self, message: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(message, headers or {"WWW-Authenticate": "Bearer"})


class InvalidToken(AuthenticationError):
    code = "INVALID_TOKEN"
    message = "Invalid or expired refresh token"


class Forbidden(BookaError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    kind = "forbidden"
    message = "You do not have access to this booking"


class AccountInactive(Forbidden):
    code = "ACCOUNT_INACTIVE"
    message = "Account is inactive"


class ValidationError(BookaError):
    status_code = 422
    code = "VALIDATION_ERROR"
    kind = "validation"
    message = "Invalid input"


# ---------------------------------------------------------------------------
# 503
# ---------------------------------------------------------------------------


class TransientDatabaseError(BookaError):
    """Lock timeout, deadlock, serialization failure or lost connection.

    The operation made no change and may be retried.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "TRANSIENT_ERROR"
    kind = "transient"
    message = "The service is busy, please retry"
