# backend/slotbook/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to the booking services.

Endpoints:
    POST / - Create a pending booking (idempotent per client and key)
    GET / - List bookings of one resource or one client
    GET /{booking_id} - Booking details
    POST /{booking_id}/confirm - Confirm a pending booking (resource owner)
    POST /{booking_id}/cancel - Cancel a booking (client or resource owner)
"""

import asyncio
from datetime import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query, Response, status

from ...api.dependencies.services import get_booking_service, get_booking_transition_service
from ...auth import get_current_principal
from ...models.booking import BookingStatus
from ...principal import UserPrincipal
from ...schemas.booking import BookingCreate, BookingListResponse, BookingResponse
from ...services.booking_service import BookingService
from ...services.booking_transitions import BookingTransitionService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"description": "Replay of an earlier request with the same idempotency key"},
        400: {"description": "Validation failure"},
        404: {"description": "Offering not found"},
        409: {"description": "Time slot not available"},
    },
)
async def create_booking(
    response: Response,
    booking_data: BookingCreate = Body(...),
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Create a Pending booking for the authenticated client."""
    result = await asyncio.to_thread(
        booking_service.create_booking,
        booking_data.resource_id,
        principal.id,
        booking_data.offering_id,
        booking_data.start_at,
        booking_data.idempotency_key,
    )
    outcome = result.value_or_raise()
    if not outcome.created:
        response.status_code = status.HTTP_200_OK
    return BookingResponse.model_validate(outcome.booking)


@router.get(
    "",
    response_model=BookingListResponse,
    responses={400: {"description": "Invalid filter combination"}},
)
async def list_bookings(
    resource_id: Optional[str] = Query(None),
    client_id: Optional[str] = Query(None),
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    start_from: Optional[datetime] = Query(None, alias="from"),
    start_to: Optional[datetime] = Query(None, alias="to"),
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """List bookings whose start falls in [from, to); the window defaults to the next week."""
    result = await asyncio.to_thread(
        booking_service.list_bookings,
        resource_id,
        client_id,
        booking_status,
        start_from,
        start_to,
    )
    bookings = result.value_or_raise()
    items = [BookingResponse.model_validate(b) for b in bookings]
    return BookingListResponse(items=items, total=len(items))


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    responses={403: {"description": "Not a participant"}, 404: {"description": "Booking not found"}},
)
async def get_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    result = await asyncio.to_thread(booking_service.get_booking, booking_id, principal)
    return BookingResponse.model_validate(result.value_or_raise())


@router.post(
    "/{booking_id}/confirm",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        400: {"description": "Booking is not pending"},
        403: {"description": "Not the resource owner"},
        404: {"description": "Booking not found"},
        409: {"description": "Overlaps another confirmed booking"},
    },
)
async def confirm_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    principal: UserPrincipal = Depends(get_current_principal),
    transitions: BookingTransitionService = Depends(get_booking_transition_service),
) -> Response:
    result = await asyncio.to_thread(transitions.confirm_booking, booking_id, principal)
    result.value_or_raise()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{booking_id}/cancel",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        400: {"description": "Booking already cancelled"},
        403: {"description": "Neither client nor resource owner"},
        404: {"description": "Booking not found"},
    },
)
async def cancel_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    principal: UserPrincipal = Depends(get_current_principal),
    transitions: BookingTransitionService = Depends(get_booking_transition_service),
) -> Response:
    result = await asyncio.to_thread(transitions.cancel_booking, booking_id, principal)
    result.value_or_raise()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
