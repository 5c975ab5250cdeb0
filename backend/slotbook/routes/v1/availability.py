# backend/slotbook/routes/v1/availability.py
"""
Availability routes - API v1

Endpoints:
    GET /slots - Free slots of a resource for one offering on one day
"""

import asyncio
from datetime import date
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...api.dependencies.services import get_slot_calculator
from ...schemas.availability import SlotResponse
from ...services.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


@router.get(
    "/slots",
    response_model=List[SlotResponse],
    responses={
        400: {"description": "Missing or invalid parameters"},
        404: {"description": "Offering not found"},
    },
)
async def get_free_slots(
    resource_id: Optional[str] = Query(None, description="Resource whose calendar to inspect"),
    offering_id: Optional[str] = Query(None, description="Offering that fixes the slot length"),
    day: Optional[date] = Query(
        None, alias="date", description="Calendar day (YYYY-MM-DD) in the reference time zone"
    ),
    calculator: SlotCalculator = Depends(get_slot_calculator),
) -> List[SlotResponse]:
    """
    List free slots between opening and closing time, stepping by the slot grid.

    Slots already started are still returned with ``is_past`` set.
    """
    result = await asyncio.to_thread(calculator.get_free_slots, resource_id, offering_id, day)
    slots = result.value_or_raise()
    return [SlotResponse(start=s.start, end=s.end, is_past=s.is_past) for s in slots]
