# backend/slotbook/schemas/availability.py
"""Free-slot response schemas."""

from datetime import datetime

from pydantic import Field

from ._strict_base import StrictModel


class SlotResponse(StrictModel):
    start: datetime
    end: datetime
    is_past: bool = Field(..., description="Slot start is at or before the current time")
