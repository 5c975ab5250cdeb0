"""Pydantic schemas for the booking API."""

from .availability import SlotResponse
from .booking import BookingCreate, BookingListResponse, BookingResponse

__all__ = [
    "BookingCreate",
    "BookingListResponse",
    "BookingResponse",
    "SlotResponse",
]
