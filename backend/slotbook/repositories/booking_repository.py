# backend/slotbook/repositories/booking_repository.py
"""
Booking Repository

Implements all data access operations for reservations:
- Idempotency lookups
- Active-interval queries used for slot computation and overlap checks
- Participant listings
- The bulk hold-expiration update used by the sweeper

"Active" always means Confirmed, or Pending with a hold later than ``now``.
Callers pass ``now`` explicitly so that one clock drives a whole operation.
"""

from datetime import datetime
import logging
from typing import Any, List, Optional, Tuple, cast

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from ..models.catalog import Resource
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _active_at(now: datetime) -> ColumnElement[bool]:
    return or_(
        Booking.status == BookingStatus.CONFIRMED.value,
        and_(
            Booking.status == BookingStatus.PENDING.value,
            Booking.hold_expires_at > now,
        ),
    )


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        """Initialize with Booking model."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def add(self, **kwargs: Any) -> Booking:
        """
        Insert a booking and flush it.

        IntegrityError is re-raised untouched so the caller can tell an
        idempotency collision from an overlap rejection.
        """
        try:
            return super().create(**kwargs)
        except RepositoryException as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise exc.__cause__
            raise

    def find_by_idempotency_key(self, client_id: str, idempotency_key: str) -> Optional[Booking]:
        return self.find_one_by(client_id=client_id, idempotency_key=idempotency_key)

    def get_for_update(self, booking_id: str) -> Optional[Booking]:
        """
        Re-read a booking inside the caller's transaction.

        The row is locked on PostgreSQL, and the identity-map copy is
        overwritten with what is stored now.
        """
        try:
            query = (
                self.db.query(Booking)
                .filter(Booking.id == booking_id)
                .populate_existing()
                .with_for_update()
            )
            return cast(Optional[Booking], query.first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock booking: {str(e)}")

    def lock_resource(self, resource_id: str) -> None:
        """
        Serialize writers for one resource until the transaction ends.

        Only PostgreSQL takes a row lock; SQLite already serializes writers.
        """
        if self.dialect_name != "postgresql":
            return
        try:
            self.db.execute(
                select(Resource.id).where(Resource.id == resource_id).with_for_update()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking resource {resource_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock resource: {str(e)}")

    def find_active_overlapping(
        self,
        resource_id: str,
        start_at: datetime,
        end_at: datetime,
        now: datetime,
        exclude_booking_id: Optional[str] = None,
        confirmed_only: bool = False,
    ) -> List[Booking]:
        """
        Get bookings on a resource that block any part of [start_at, end_at).

        Args:
            resource_id: The resource ID
            start_at: Range start (inclusive)
            end_at: Range end (exclusive)
            now: Instant against which holds are judged
            exclude_booking_id: Optional booking to leave out (re-validation)
            confirmed_only: Ignore Pending holds entirely

        Returns:
            List of blocking bookings
        """
        try:
            status_clause = (
                Booking.status == BookingStatus.CONFIRMED.value if confirmed_only else _active_at(now)
            )
            query = self.db.query(Booking).filter(
                Booking.resource_id == resource_id,
                status_clause,
                # Half-open interval overlap
                Booking.start_at < end_at,
                Booking.end_at > start_at,
            )

            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)

            return cast(List[Booking], query.order_by(Booking.start_at).all())

        except SQLAlchemyError as e:
            self.logger.error(f"Error checking overlap for resource {resource_id}: {str(e)}")
            raise RepositoryException(f"Failed to check conflict: {str(e)}")

    def busy_intervals(
        self, resource_id: str, window_start: datetime, window_end: datetime, now: datetime
    ) -> List[Tuple[datetime, datetime]]:
        """Return [start, end) pairs of active bookings intersecting a window."""
        try:
            rows = (
                self.db.query(Booking.start_at, Booking.end_at)
                .filter(
                    Booking.resource_id == resource_id,
                    _active_at(now),
                    Booking.start_at < window_end,
                    Booking.end_at > window_start,
                )
                .order_by(Booking.start_at)
                .all()
            )
            return [(row.start_at, row.end_at) for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading busy intervals for {resource_id}: {str(e)}")
            raise RepositoryException(f"Failed to load busy intervals: {str(e)}")

    def list_for(
        self,
        *,
        resource_id: Optional[str] = None,
        client_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        start_from: datetime,
        start_to: datetime,
    ) -> List[Booking]:
        """
        List bookings of one resource or one client whose start falls in [start_from, start_to).

        Ordered by start time.
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.start_at >= start_from,
                Booking.start_at < start_to,
            )
            if resource_id is not None:
                query = query.filter(Booking.resource_id == resource_id)
            if client_id is not None:
                query = query.filter(Booking.client_id == client_id)
            if status is not None:
                query = query.filter(Booking.status == status.value)
            return cast(List[Booking], query.order_by(Booking.start_at, Booking.id).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def cancel_expired_holds(self, now: datetime) -> int:
        """
        Move every Pending booking whose hold lapsed before ``now`` to Cancelled.

        Single UPDATE statement; Confirmed and Cancelled rows never match.

        Returns:
            Number of bookings cancelled
        """
        try:
            result = self.db.execute(
                update(Booking)
                .where(
                    Booking.status == BookingStatus.PENDING.value,
                    Booking.hold_expires_at.is_not(None),
                    Booking.hold_expires_at <= now,
                )
                .values(
                    status=BookingStatus.CANCELLED.value,
                    hold_expires_at=None,
                    cancelled_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            return int(result.rowcount or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error cancelling expired holds: {str(e)}")
            raise RepositoryException(f"Failed to cancel expired holds: {str(e)}")
