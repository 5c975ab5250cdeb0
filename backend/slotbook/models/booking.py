# backend/slotbook/models/booking.py
"""
Booking model for the reservation engine.

A booking claims the half-open interval [start_at, end_at) on one resource.
It is created Pending with a temporary hold, then either Confirmed by the
resource owner, Cancelled by a participant, or Cancelled by the hold sweep.
Rows are never deleted.

The database itself refuses two active bookings on the same resource whose
intervals overlap. "Active" means Confirmed, or Pending with a hold that has
not yet lapsed. The guard is a trigger installed right after the table is
created, in the flavour of the connected dialect.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Optional

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)

IDEMPOTENCY_CONSTRAINT = "ux_booking_client_idempotency"
OVERLAP_GUARD = "booking_overlap"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"  # Holding the slot until hold_expires_at
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"  # Terminal


class Booking(Base):
    """
    A reservation of a resource for one offering at one time.

    hold_expires_at is only set while the booking is Pending.
    idempotency_key is unique per client; a retried create returns the
    original row instead of writing a second one.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=generate_ulid)

    resource_id = Column(String(26), ForeignKey("resources.id"), nullable=False)
    client_id = Column(String(26), nullable=False, index=True)
    offering_id = Column(String(26), ForeignKey("offerings.id"), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    start_at = Column(UTCDateTime(), nullable=False)
    end_at = Column(UTCDateTime(), nullable=False)
    hold_expires_at = Column(UTCDateTime(), nullable=True)
    idempotency_key = Column(String(100), nullable=False)

    # Timestamps
    created_at = Column(UTCDateTime(), nullable=False, default=_utcnow)
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=_utcnow)
    confirmed_at = Column(UTCDateTime(), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)
    cancelled_by_id = Column(String(26), nullable=True)

    resource = relationship("Resource")
    offering = relationship("Offering")

    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_booking_time_order"),
        UniqueConstraint("client_id", "idempotency_key", name=IDEMPOTENCY_CONSTRAINT),
        Index("ix_bookings_resource_window", "resource_id", "start_at", "end_at"),
        Index("ix_bookings_status_hold", "status", "hold_expires_at"),
    )

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.status} {self.start_at}-{self.end_at}>"

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    def confirm(self, now: datetime) -> None:
        self.status = BookingStatus.CONFIRMED.value
        self.hold_expires_at = None
        self.confirmed_at = now

    def cancel(self, now: datetime, cancelled_by: Optional[str] = None) -> None:
        self.status = BookingStatus.CANCELLED.value
        self.hold_expires_at = None
        self.cancelled_at = now
        self.cancelled_by_id = cancelled_by


# Overlap guard. SQLite compares the naive UTC text written by UTCDateTime.
_SQLITE_ACTIVE_NEW = (
    "NEW.status = 'CONFIRMED' "
    "OR (NEW.status = 'PENDING' AND NEW.hold_expires_at > datetime('now'))"
)
_SQLITE_CONFLICT_EXISTS = """
    SELECT RAISE(ABORT, 'booking_overlap: resource already booked for this time')
    WHERE EXISTS (
        SELECT 1 FROM bookings b
        WHERE b.resource_id = NEW.resource_id
          AND b.id <> NEW.id
          AND (b.status = 'CONFIRMED'
               OR (b.status = 'PENDING' AND b.hold_expires_at > datetime('now')))
          AND b.start_at < NEW.end_at
          AND b.end_at > NEW.start_at
    );
"""

_sqlite_insert_trigger = DDL(
    "CREATE TRIGGER IF NOT EXISTS booking_prevent_overlap_insert "
    "BEFORE INSERT ON bookings "
    f"WHEN {_SQLITE_ACTIVE_NEW} "
    f"BEGIN {_SQLITE_CONFLICT_EXISTS} END"
)
_sqlite_update_trigger = DDL(
    "CREATE TRIGGER IF NOT EXISTS booking_prevent_overlap_update "
    "BEFORE UPDATE OF status, start_at, end_at, hold_expires_at ON bookings "
    f"WHEN {_SQLITE_ACTIVE_NEW} "
    f"BEGIN {_SQLITE_CONFLICT_EXISTS} END"
)

_postgres_guard_function = DDL(
    """
    CREATE OR REPLACE FUNCTION booking_prevent_overlap() RETURNS trigger AS $$
    BEGIN
        IF NEW.status = 'CONFIRMED'
           OR (NEW.status = 'PENDING' AND NEW.hold_expires_at > now()) THEN
            IF EXISTS (
                SELECT 1 FROM bookings b
                WHERE b.resource_id = NEW.resource_id
                  AND b.id <> NEW.id
                  AND (b.status = 'CONFIRMED'
                       OR (b.status = 'PENDING' AND b.hold_expires_at > now()))
                  AND b.start_at < NEW.end_at
                  AND b.end_at > NEW.start_at
            ) THEN
                RAISE EXCEPTION 'booking_overlap: resource already booked for this time'
                    USING ERRCODE = 'exclusion_violation';
            END IF;
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql;
    """
)
_postgres_guard_trigger = DDL(
    "DROP TRIGGER IF EXISTS booking_prevent_overlap ON bookings; "
    "CREATE TRIGGER booking_prevent_overlap "
    "BEFORE INSERT OR UPDATE ON bookings "
    "FOR EACH ROW EXECUTE FUNCTION booking_prevent_overlap()"
)

event.listen(Booking.__table__, "after_create", _sqlite_insert_trigger.execute_if(dialect="sqlite"))
event.listen(Booking.__table__, "after_create", _sqlite_update_trigger.execute_if(dialect="sqlite"))
event.listen(
    Booking.__table__, "after_create", _postgres_guard_function.execute_if(dialect="postgresql")
)
event.listen(
    Booking.__table__, "after_create", _postgres_guard_trigger.execute_if(dialect="postgresql")
)
