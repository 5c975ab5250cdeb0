# backend/slotbook/models/catalog.py
"""
Catalog models: bookable resources and the offerings sold against them.

A resource is one provider calendar. An offering is a fixed-length service on
that calendar; its duration is the only thing the booking engine reads from it.
"""

from datetime import datetime, timezone
import logging

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Resource(Base):
    """
    A provider calendar that can be booked.

    Attributes:
        id: ULID primary key
        owner_user_id: Identity allowed to confirm bookings on this calendar
        display_name: Human readable name
        created_at: Timestamp when created
    """

    __tablename__ = "resources"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    owner_user_id = Column(String(26), nullable=False, index=True)
    display_name = Column(String(200), nullable=False)
    created_at = Column(UTCDateTime(), nullable=False, default=_utcnow)

    offerings = relationship("Offering", back_populates="resource", order_by="Offering.name")

    def __repr__(self) -> str:
        return f"<Resource {self.id} owner={self.owner_user_id}>"


class Offering(Base):
    """A fixed-duration service offered on a resource."""

    __tablename__ = "offerings"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    resource_id = Column(String(26), ForeignKey("resources.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    description = Column(Text, nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=_utcnow)
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=_utcnow)

    resource = relationship("Resource", back_populates="offerings")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_offering_duration_positive"),
    )

    def __repr__(self) -> str:
        return f"<Offering {self.name} ({self.duration_minutes}m)>"
