"""
Celery tasks package.

Periodic maintenance for the booking engine, currently the hold sweep.
"""

from slotbook.tasks.booking_holds import expire_holds
from slotbook.tasks.celery_app import celery_app

__all__ = ["celery_app", "expire_holds"]
