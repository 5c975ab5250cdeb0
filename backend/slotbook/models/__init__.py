"""
Database models for the booking engine.

- Resource / Offering: the catalog the engine books against
- Booking: reservations and their lifecycle
"""

from .booking import IDEMPOTENCY_CONSTRAINT, OVERLAP_GUARD, Booking, BookingStatus
from .catalog import Offering, Resource

__all__ = [
    "Booking",
    "BookingStatus",
    "IDEMPOTENCY_CONSTRAINT",
    "OVERLAP_GUARD",
    "Offering",
    "Resource",
]
