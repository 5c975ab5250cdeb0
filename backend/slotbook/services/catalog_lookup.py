# backend/slotbook/services/catalog_lookup.py
"""The narrow view of the offering catalog that booking services depend on."""

from typing import Optional, Protocol

from ..repositories.catalog_repository import OfferingInfo


class CatalogLookup(Protocol):
    def resolve_offering(self, offering_id: str) -> Optional[OfferingInfo]:
        """Return owning resource and duration, or None when the offering is unknown."""
        ...
