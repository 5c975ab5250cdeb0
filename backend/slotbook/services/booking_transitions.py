# backend/slotbook/services/booking_transitions.py
"""
Booking state machine.

    PENDING ──confirm──▶ CONFIRMED
       │                    │
       └──────cancel────────┴──▶ CANCELLED (terminal)

Confirm belongs to the resource owner and re-checks the interval against
other Confirmed bookings. Cancel belongs to the resource owner or the client
who made the booking. Both clear the hold. Each transition updates exactly
one row.
"""

from enum import Enum
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.clock import Clock, system_clock
from ..core.exceptions import RepositoryException
from ..core.results import Result, ServiceError
from ..models.booking import Booking, BookingStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import UserPrincipal
from ..repositories.booking_repository import BookingRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_service import CONFLICT_MESSAGE, classify_integrity_error

logger = logging.getLogger(__name__)


class TransitionAction(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"


class BookingTransitionService(BaseService):
    """Applies confirm and cancel to individual bookings."""

    def __init__(
        self,
        db: Session,
        clock: Clock = system_clock,
        repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.clock = clock
        self.repository = repository or RepositoryFactory.create_booking_repository(db)

    def _load(self, booking_id: str) -> Result[Booking]:
        booking = self.repository.get_by_id(booking_id)
        if booking is None:
            return Result.failure(
                ServiceError.not_found(
                    "Booking not found.", code="BOOKING_NOT_FOUND", booking_id=booking_id
                )
            )
        return Result.success(booking)

    @staticmethod
    def _owner_id(booking: Booking) -> Optional[str]:
        return booking.resource.owner_user_id if booking.resource is not None else None

    def _fail(self, action: TransitionAction, error: ServiceError) -> Result[Booking]:
        prometheus_metrics.record_transition(action.value, error.kind.value)
        return Result.failure(error)

    @staticmethod
    def _not_pending(booking: Booking) -> ServiceError:
        return ServiceError.invalid_state(
            "Only pending bookings can be confirmed.",
            code="BOOKING_NOT_PENDING",
            status=booking.status,
        )

    @staticmethod
    def _already_cancelled() -> ServiceError:
        return ServiceError.invalid_state("Booking already cancelled.", code="BOOKING_ALREADY_CANCELLED")

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(self, booking_id: str, actor: UserPrincipal) -> Result[Booking]:
        """
        Confirm a Pending booking on a resource the actor owns.

        A hold that lapsed but has not been swept yet can still be confirmed
        as long as nothing else now occupies the interval.
        """
        action = TransitionAction.CONFIRM
        loaded = self._load(booking_id)
        if loaded.error is not None:
            return self._fail(action, loaded.error)
        booking = loaded.value
        assert booking is not None

        if not actor.is_provider or self._owner_id(booking) != actor.id:
            return self._fail(
                action, ServiceError.forbidden("Only the resource owner can confirm this booking.")
            )
        if booking.status_enum != BookingStatus.PENDING:
            return self._fail(action, self._not_pending(booking))

        now = self.clock.now()
        try:
            with self.transaction():
                self.repository.lock_resource(booking.resource_id)
                # A cancel or sweep may have committed since the first read
                current = self.repository.get_for_update(booking_id)
                if current is None or current.status_enum != BookingStatus.PENDING:
                    return self._fail(action, self._not_pending(current or booking))
                blocking = self.repository.find_active_overlapping(
                    current.resource_id,
                    current.start_at,
                    current.end_at,
                    now,
                    exclude_booking_id=current.id,
                    confirmed_only=True,
                )
                if blocking:
                    return self._fail(
                        action,
                        ServiceError.conflict(
                            "Time slot overlaps another confirmed booking.",
                            booking_id=current.id,
                            conflicting_booking_id=blocking[0].id,
                        ),
                    )
                current.confirm(now)
                self.repository.flush()
        except IntegrityError as exc:
            self.db.rollback()
            if classify_integrity_error(exc) != "overlap":
                raise RepositoryException(f"Failed to confirm booking: {exc}") from exc
            return self._fail(
                action, ServiceError.conflict(CONFLICT_MESSAGE, booking_id=booking_id)
            )

        self.log_operation("confirm_booking", booking_id=current.id, actor_id=actor.id)
        prometheus_metrics.record_transition(action.value, "success")
        return Result.success(current)

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, actor: UserPrincipal) -> Result[Booking]:
        """Cancel a Pending or Confirmed booking as its client or the resource owner."""
        action = TransitionAction.CANCEL
        loaded = self._load(booking_id)
        if loaded.error is not None:
            return self._fail(action, loaded.error)
        booking = loaded.value
        assert booking is not None

        if booking.status_enum == BookingStatus.CANCELLED:
            return self._fail(action, self._already_cancelled())
        if actor.id not in (booking.client_id, self._owner_id(booking)):
            return self._fail(
                action, ServiceError.forbidden("You do not have access to this booking.")
            )

        now = self.clock.now()
        with self.transaction():
            current = self.repository.get_for_update(booking_id)
            if current is None or current.status_enum == BookingStatus.CANCELLED:
                return self._fail(action, self._already_cancelled())
            current.cancel(now, cancelled_by=actor.id)
            self.repository.flush()

        self.log_operation("cancel_booking", booking_id=current.id, actor_id=actor.id)
        prometheus_metrics.record_transition(action.value, "success")
        return Result.success(current)
