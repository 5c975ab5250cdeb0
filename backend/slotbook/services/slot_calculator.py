# backend/slotbook/services/slot_calculator.py
"""
Slot Calculator

Computes the bookable start times of one resource on one calendar day for a
given offering. The day is interpreted in the reference time zone carried by
the injected ``WorkingHours``; every returned instant is UTC.

The result is a pure function of the inputs, the current active-booking
snapshot, and the clock. Nothing is written.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.clock import Clock, system_clock
from ..core.results import Result, ServiceError
from ..core.timezone_utils import WorkingHours
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .catalog_lookup import CatalogLookup

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    is_past: bool


def _overlaps_any(start: datetime, end: datetime, busy: Sequence[Tuple[datetime, datetime]]) -> bool:
    return any(not (end <= busy_start or start >= busy_end) for busy_start, busy_end in busy)


def enumerate_free_slots(
    window_start: datetime,
    window_end: datetime,
    duration: timedelta,
    step: timedelta,
    busy: Sequence[Tuple[datetime, datetime]],
    now: datetime,
) -> List[Slot]:
    """
    Walk the window in ``step`` increments and keep every candidate that fits
    before ``window_end`` and touches no busy interval.

    Back-to-back intervals do not overlap: a slot may end exactly where a
    booking starts.
    """
    slots: List[Slot] = []
    current = window_start
    while current < window_end:
        candidate_end = current + duration
        if candidate_end > window_end:
            break
        if not _overlaps_any(current, candidate_end, busy):
            slots.append(Slot(start=current, end=candidate_end, is_past=current <= now))
        current += step
    return slots


class SlotCalculator(BaseService):
    """
    Free-slot computation for a resource.

    Working hours and slot step are passed in explicitly; the calculator holds
    no calendar configuration of its own.
    """

    def __init__(
        self,
        db: Session,
        working_hours: WorkingHours,
        step_minutes: int = 30,
        clock: Clock = system_clock,
        catalog: Optional[CatalogLookup] = None,
        booking_repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.working_hours = working_hours
        self.step = timedelta(minutes=step_minutes)
        self.clock = clock
        self.catalog = catalog or RepositoryFactory.create_catalog_repository(db)
        self.repository = booking_repository or RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("get_free_slots")
    def get_free_slots(
        self, resource_id: Optional[str], offering_id: Optional[str], day: Optional[date]
    ) -> Result[List[Slot]]:
        if not resource_id:
            return Result.failure(
                ServiceError.validation("Parameter 'resource_id' is required.", field="resource_id")
            )
        if not offering_id:
            return Result.failure(
                ServiceError.validation("Parameter 'offering_id' is required.", field="offering_id")
            )
        if day is None:
            return Result.failure(
                ServiceError.validation("Parameter 'date' is required.", field="date")
            )

        offering = self.catalog.resolve_offering(offering_id)
        if offering is None:
            return Result.failure(
                ServiceError.not_found(
                    "Offering not found.", code="OFFERING_NOT_FOUND", offering_id=offering_id
                )
            )
        if offering.duration_minutes <= 0:
            return Result.failure(
                ServiceError.validation(
                    "Offering duration must be greater than zero.",
                    code="INVALID_DURATION",
                    offering_id=offering_id,
                )
            )

        window_start, window_end = self.working_hours.window_utc(day)
        now = self.clock.now()
        busy = self.repository.busy_intervals(resource_id, window_start, window_end, now)

        slots = enumerate_free_slots(
            window_start,
            window_end,
            timedelta(minutes=offering.duration_minutes),
            self.step,
            busy,
            now,
        )
        self.logger.debug(
            "Computed %d free slots for resource %s on %s (%d busy)",
            len(slots),
            resource_id,
            day.isoformat(),
            len(busy),
        )
        return Result.success(slots)
