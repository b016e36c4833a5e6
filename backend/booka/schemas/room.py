"""Pydantic v2 request/response schemas for room endpoints."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class RoomCreate(BaseModel):
    """Schema for creating a new room."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    location: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., ge=1)
    price_per_night: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    amenities: dict[str, bool] = Field(default_factory=dict)
    images: list[str] = Field(default_factory=list)
    status: str = Field("available", pattern="^(available|unavailable)$")


class RoomUpdate(BaseModel):
    """Schema for partially updating a room. All fields optional."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    location: str | None = Field(None, min_length=1, max_length=255)
    capacity: int | None = Field(None, ge=1)
    price_per_night: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    amenities: dict[str, bool] | None = None
    images: list[str] | None = None
    status: str | None = Field(None, pattern="^(available|unavailable)$")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class RoomResponse(BaseModel):
    """Public room information returned from the API."""

    id: uuid.UUID
    name: str
    description: str | None = None
    location: str
    capacity: int
    price_per_night: Decimal
    amenities: dict[str, bool]
    images: list[str]
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoomSearchItem(RoomResponse):
    """Search result row. Stay fields are set when the search names dates."""

    nights: int | None = None
    estimated_total_price: Decimal | None = None


class RoomListResponse(BaseModel):
    """Paginated room search results."""

    items: list[RoomSearchItem]
    total: int
    page: int
    limit: int
    total_pages: int


class AvailabilityResponse(BaseModel):
    """Advisory availability of one room for a stay.

    The answer is not a reservation: a booking can still fail with a date
    conflict if someone else books first.
    """

    room_id: uuid.UUID
    room_name: str
    date_from: date
    date_to: date
    available: bool
    conflicting_bookings: int
    nights: int | None = None
    total_price: Decimal | None = None
