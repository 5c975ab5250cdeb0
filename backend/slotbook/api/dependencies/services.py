# backend/slotbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. ``get_clock`` is the
single source of time for request handling; tests override it.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.clock import Clock, system_clock
from ...core.config import settings
from ...services.booking_service import BookingRules, BookingService
from ...services.booking_transitions import BookingTransitionService
from ...services.slot_calculator import SlotCalculator
from .database import get_db

logger = logging.getLogger(__name__)


def get_clock() -> Clock:
    return system_clock


def get_booking_rules() -> BookingRules:
    return BookingRules.from_settings(settings)


def get_slot_calculator(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> SlotCalculator:
    """Get SlotCalculator configured with the platform working hours."""
    return SlotCalculator(
        db,
        working_hours=settings.working_hours,
        step_minutes=settings.slot_step_minutes,
        clock=clock,
    )


def get_booking_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    rules: BookingRules = Depends(get_booking_rules),
) -> BookingService:
    """Get BookingService instance with proper dependencies."""
    return BookingService(db, rules=rules, clock=clock)


def get_booking_transition_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> BookingTransitionService:
    return BookingTransitionService(db, clock=clock)
