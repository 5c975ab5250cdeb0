# backend/slotbook/repositories/catalog_repository.py
"""
Catalog Repository

Read-only access to resources and offerings. The booking engine consumes the
catalog through ``resolve_offering``; everything else about offerings (CRUD,
pricing) lives outside this service.
"""

from dataclasses import dataclass
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.catalog import Offering
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OfferingInfo:
    """What the booking engine needs to know about an offering."""

    offering_id: str
    resource_id: str
    duration_minutes: int


class CatalogRepository(BaseRepository[Offering]):
    """Repository for offering and resource lookups."""

    def __init__(self, db: Session):
        super().__init__(db, Offering)
        self.logger = logging.getLogger(__name__)

    def resolve_offering(self, offering_id: str) -> Optional[OfferingInfo]:
        """Return the owning resource and duration of an offering, or None if unknown."""
        try:
            row = (
                self.db.query(Offering.id, Offering.resource_id, Offering.duration_minutes)
                .filter(Offering.id == offering_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error resolving offering {offering_id}: {str(e)}")
            raise RepositoryException(f"Failed to resolve offering: {str(e)}")
        if row is None:
            return None
        return OfferingInfo(
            offering_id=row.id,
            resource_id=row.resource_id,
            duration_minutes=int(row.duration_minutes),
        )
