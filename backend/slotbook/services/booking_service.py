# backend/slotbook/services/booking_service.py
"""
Booking Service

Handles reservation creation and read access.

Creation is idempotent per (client, idempotency key): a retried request gets
the row written by the first one. The overlap check done here is advisory.
The database trigger installed with the bookings table is what actually
guarantees that two active bookings never share time on a resource; when it
fires, the caller gets the same Conflict the advisory check would have given.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.clock import Clock, system_clock
from ..core.config import Settings
from ..core.exceptions import RepositoryException
from ..core.results import Result, ServiceError
from ..core.timezone_utils import ensure_utc, floor_to_step
from ..models.booking import IDEMPOTENCY_CONSTRAINT, OVERLAP_GUARD, Booking, BookingStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import UserPrincipal
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .catalog_lookup import CatalogLookup

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "The requested time overlaps an existing booking."

# SQLite reports unique violations by column list, not constraint name
_IDEMPOTENCY_MARKERS = (IDEMPOTENCY_CONSTRAINT, "bookings.client_id, bookings.idempotency_key")


@dataclass(frozen=True)
class BookingRules:
    """Tunable booking policy, normally built from settings."""

    slot_step_minutes: int = 30
    hold_duration: timedelta = timedelta(hours=24)
    start_grace: timedelta = timedelta(seconds=60)
    idempotency_key_max_length: int = 100
    list_default_window: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls, settings: Settings) -> "BookingRules":
        return cls(
            slot_step_minutes=settings.slot_step_minutes,
            hold_duration=timedelta(hours=settings.hold_duration_hours),
            start_grace=timedelta(seconds=settings.start_grace_seconds),
            idempotency_key_max_length=settings.idempotency_key_max_length,
            list_default_window=timedelta(days=settings.list_default_window_days),
        )


@dataclass(frozen=True)
class CreateBookingOutcome:
    booking: Booking
    created: bool  # False when an earlier request with the same key is replayed


def classify_integrity_error(exc: IntegrityError) -> Optional[str]:
    """
    Map a storage rejection of a booking write to ``"idempotency"``,
    ``"overlap"`` or None when it is neither.
    """
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    constraint_name = (getattr(diag, "constraint_name", "") or "") if diag is not None else ""

    if constraint_name == IDEMPOTENCY_CONSTRAINT:
        return "idempotency"

    text = str(orig if orig is not None else exc)
    if any(marker in text for marker in _IDEMPOTENCY_MARKERS):
        return "idempotency"
    if OVERLAP_GUARD in text or getattr(orig, "pgcode", None) == "23P01":
        return "overlap"
    return None


class BookingService(BaseService):
    """
    Service layer for creating and reading bookings.

    Every business outcome is returned as a ``Result``; only infrastructure
    failures raise.
    """

    def __init__(
        self,
        db: Session,
        rules: Optional[BookingRules] = None,
        clock: Clock = system_clock,
        catalog: Optional[CatalogLookup] = None,
        repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.rules = rules or BookingRules()
        self.clock = clock
        self.catalog = catalog or RepositoryFactory.create_catalog_repository(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)

    def _validate_create_input(
        self,
        resource_id: str,
        client_id: str,
        offering_id: str,
        start_at: Optional[datetime],
        idempotency_key: str,
    ) -> Optional[ServiceError]:
        for field_name, value in (
            ("resource_id", resource_id),
            ("client_id", client_id),
            ("offering_id", offering_id),
        ):
            if not value:
                return ServiceError.validation(f"'{field_name}' is required.", field=field_name)
        if start_at is None:
            return ServiceError.validation("'start_at' is required.", field="start_at")
        if not idempotency_key or not idempotency_key.strip():
            return ServiceError.validation(
                "'idempotency_key' is required.", field="idempotency_key"
            )
        if len(idempotency_key) > self.rules.idempotency_key_max_length:
            return ServiceError.validation(
                f"'idempotency_key' must be at most {self.rules.idempotency_key_max_length} characters.",
                field="idempotency_key",
            )
        return None

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        resource_id: str,
        client_id: str,
        offering_id: str,
        start_at: Optional[datetime],
        idempotency_key: str,
    ) -> Result[CreateBookingOutcome]:
        """
        Create a Pending booking holding [start, start + duration).

        Steps:
            1. Replay an existing booking for (client_id, idempotency_key)
            2. Resolve the offering and check it belongs to the resource
            3. Normalize the start onto the slot grid
            4. Advisory overlap check against active bookings
            5. Insert with a hold, absorbing a concurrent duplicate-key insert
        """
        invalid = self._validate_create_input(
            resource_id, client_id, offering_id, start_at, idempotency_key
        )
        if invalid is not None:
            prometheus_metrics.record_booking_create("validation")
            return Result.failure(invalid)
        assert start_at is not None

        existing = self.repository.find_by_idempotency_key(client_id, idempotency_key)
        if existing is not None:
            self.log_operation(
                "create_booking_replayed", booking_id=existing.id, client_id=client_id
            )
            prometheus_metrics.record_booking_create("replayed")
            return Result.success(CreateBookingOutcome(booking=existing, created=False))

        offering = self.catalog.resolve_offering(offering_id)
        if offering is None:
            prometheus_metrics.record_booking_create("not_found")
            return Result.failure(
                ServiceError.not_found(
                    "Offering not found.", code="OFFERING_NOT_FOUND", offering_id=offering_id
                )
            )
        if offering.resource_id != resource_id:
            prometheus_metrics.record_booking_create("validation")
            return Result.failure(
                ServiceError.validation(
                    "Offering does not belong to the requested resource.",
                    code="OFFERING_RESOURCE_MISMATCH",
                    offering_id=offering_id,
                    resource_id=resource_id,
                )
            )
        if offering.duration_minutes <= 0:
            prometheus_metrics.record_booking_create("validation")
            return Result.failure(
                ServiceError.validation(
                    "Offering duration must be greater than zero.",
                    code="INVALID_DURATION",
                    offering_id=offering_id,
                )
            )

        now = self.clock.now()
        requested = ensure_utc(start_at)
        if requested < now - self.rules.start_grace:
            prometheus_metrics.record_booking_create("validation")
            return Result.failure(
                ServiceError.validation(
                    "Start time must be in the future.",
                    code="START_IN_PAST",
                    start_at=requested.isoformat(),
                )
            )
        # The slot already in progress stays bookable
        start = floor_to_step(requested, self.rules.slot_step_minutes)
        end = start + timedelta(minutes=offering.duration_minutes)

        try:
            with self.transaction():
                self.repository.lock_resource(resource_id)
                blocking = self.repository.find_active_overlapping(resource_id, start, end, now)
                if blocking:
                    prometheus_metrics.record_booking_create("conflict")
                    return Result.failure(
                        ServiceError.conflict(
                            CONFLICT_MESSAGE,
                            resource_id=resource_id,
                            start_at=start.isoformat(),
                            end_at=end.isoformat(),
                        )
                    )
                booking = self.repository.add(
                    resource_id=resource_id,
                    client_id=client_id,
                    offering_id=offering_id,
                    status=BookingStatus.PENDING.value,
                    start_at=start,
                    end_at=end,
                    created_at=now,
                    hold_expires_at=now + self.rules.hold_duration,
                    idempotency_key=idempotency_key,
                )
        except IntegrityError as exc:
            return self._resolve_insert_race(exc, resource_id, client_id, idempotency_key, start, end)

        self.log_operation(
            "create_booking",
            booking_id=booking.id,
            resource_id=resource_id,
            client_id=client_id,
            start_at=start.isoformat(),
        )
        prometheus_metrics.record_booking_create("created")
        return Result.success(CreateBookingOutcome(booking=booking, created=True))

    def _resolve_insert_race(
        self,
        exc: IntegrityError,
        resource_id: str,
        client_id: str,
        idempotency_key: str,
        start: datetime,
        end: datetime,
    ) -> Result[CreateBookingOutcome]:
        """
        Turn a rejected insert into a replay or a Conflict.

        A concurrent duplicate for the same slot trips the overlap guard before
        the unique constraint is checked, so both rejections look for the
        winning row first.
        """
        kind = classify_integrity_error(exc)
        if kind in ("idempotency", "overlap"):
            winner = self.repository.find_by_idempotency_key(client_id, idempotency_key)
            if winner is not None:
                self.logger.info(
                    "Concurrent create for key %s resolved to booking %s", idempotency_key, winner.id
                )
                prometheus_metrics.record_booking_create("replayed")
                return Result.success(CreateBookingOutcome(booking=winner, created=False))
        if kind == "idempotency":
            raise RepositoryException(
                "Idempotency constraint violated but no booking found for the key"
            ) from exc
        if kind == "overlap":
            self.logger.info(
                "Overlap guard rejected booking on resource %s at %s", resource_id, start.isoformat()
            )
            prometheus_metrics.record_booking_create("conflict")
            return Result.failure(
                ServiceError.conflict(
                    CONFLICT_MESSAGE,
                    resource_id=resource_id,
                    start_at=start.isoformat(),
                    end_at=end.isoformat(),
                )
            )
        self.logger.error("Unexpected integrity error creating booking: %s", exc)
        raise RepositoryException(f"Integrity constraint violated: {exc}") from exc

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str, actor: UserPrincipal) -> Result[Booking]:
        """Return a booking visible to its client or to the resource owner."""
        booking = self.repository.get_by_id(booking_id)
        if booking is None:
            return Result.failure(
                ServiceError.not_found(
                    "Booking not found.", code="BOOKING_NOT_FOUND", booking_id=booking_id
                )
            )
        owner_id = booking.resource.owner_user_id if booking.resource is not None else None
        if actor.id not in (booking.client_id, owner_id):
            return Result.failure(ServiceError.forbidden("You do not have access to this booking."))
        return Result.success(booking)

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self,
        resource_id: Optional[str] = None,
        client_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> Result[List[Booking]]:
        """
        List bookings for exactly one resource or one client.

        The window filters on start time and defaults to the next seven days
        when neither bound is given.
        """
        if not resource_id and not client_id:
            return Result.failure(
                ServiceError.validation("Specify exactly one of 'resource_id' or 'client_id'.")
            )
        if resource_id and client_id:
            return Result.failure(
                ServiceError.validation(
                    "Only one of 'resource_id' or 'client_id' can be specified at the same time."
                )
            )

        if start_from is None and start_to is None:
            start_from = self.clock.now()
            start_to = start_from + self.rules.list_default_window
        elif start_from is None or start_to is None:
            return Result.failure(
                ServiceError.validation("Both 'from' and 'to' must be specified together.")
            )
        else:
            start_from = ensure_utc(start_from)
            start_to = ensure_utc(start_to)

        if start_from >= start_to:
            return Result.failure(ServiceError.validation("'from' must be earlier than 'to'."))

        bookings = self.repository.list_for(
            resource_id=resource_id or None,
            client_id=client_id or None,
            status=status,
            start_from=start_from,
            start_to=start_to,
        )
        return Result.success(bookings)
