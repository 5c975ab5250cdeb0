# backend/slotbook/tasks/beat_schedule.py
"""
Celery Beat schedule configuration.

Tasks are scheduled using crontab expressions evaluated in the Celery app
timezone, which is the reference time zone.
"""

from typing import Any, Dict

from celery.schedules import crontab

from slotbook.core.config import settings


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    return {
        # Cancel Pending bookings whose hold lapsed
        "expire-booking-holds": {
            "task": "bookings.expire_holds",
            "schedule": crontab(hour=settings.sweep_hour, minute=0),
            "options": {"expires": 3600},
        },
    }
