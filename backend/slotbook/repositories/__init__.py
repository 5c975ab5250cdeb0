# backend/slotbook/repositories/__init__.py
"""
Repository Pattern Implementation

This package provides the repository layer for data access,
separating business logic from database queries.

Usage:
    from slotbook.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_booking_repository(db)
    busy = repository.busy_intervals(resource_id, window_start, window_end, now)
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .catalog_repository import CatalogRepository, OfferingInfo
from .factory import RepositoryFactory

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "CatalogRepository",
    "OfferingInfo",
    "RepositoryFactory",
]
