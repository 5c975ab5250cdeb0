# backend/slotbook/schemas/booking.py
"""
Booking schemas.

All instants are serialized as ISO-8601 UTC. Requests may carry any offset;
the service layer converts them.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator

from ..models.booking import BookingStatus
from ._strict_base import StrictModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """
    Create a booking for the authenticated client.

    ``start_at`` is snapped down to the slot grid; the stored end is derived
    from the offering's duration.
    """

    resource_id: str = Field(..., min_length=1, max_length=26, description="Resource to book")
    offering_id: str = Field(..., min_length=1, max_length=26, description="Offering being booked")
    start_at: datetime = Field(..., description="Requested start, any offset")
    idempotency_key: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Client-chosen key; retries with the same key return the same booking",
    )

    @field_validator("start_at")
    @classmethod
    def _require_offset(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("start_at must include a UTC offset")
        return value


class BookingResponse(StrictModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")

    id: str
    resource_id: str
    client_id: str
    offering_id: str
    status: BookingStatus
    start_at: datetime
    end_at: datetime
    created_at: datetime
    hold_expires_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class BookingListResponse(StrictModel):
    items: List[BookingResponse]
    total: int
