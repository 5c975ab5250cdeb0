# backend/slotbook/tasks/booking_holds.py
"""
Hold expiration as a Celery task.

The API process runs the same sweep in a background thread; running both is
safe because a sweep only moves rows out of Pending.
"""

import logging
from typing import Any, Callable, Dict, TypeVar, cast

from celery import shared_task

from slotbook.database import get_db_session
from slotbook.services.hold_sweeper import HoldSweeper

logger = logging.getLogger(__name__)

_TaskFunc = TypeVar("_TaskFunc", bound=Callable[..., Any])


def _typed_shared_task(*args: Any, **kwargs: Any) -> Callable[[_TaskFunc], _TaskFunc]:
    """Typed wrapper for Celery's shared_task decorator."""
    return cast(Callable[[_TaskFunc], _TaskFunc], shared_task(*args, **kwargs))


@_typed_shared_task(name="bookings.expire_holds", ignore_result=True)
def expire_holds() -> Dict[str, int]:
    """Cancel every Pending booking whose hold already lapsed."""
    expired = HoldSweeper(session_factory=get_db_session).sweep_once()
    logger.info("[BOOKING-HOLDS] expire_holds cancelled %d bookings", expired)
    return {"expired": expired}
