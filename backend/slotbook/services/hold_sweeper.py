# backend/slotbook/services/hold_sweeper.py
"""
Hold expiration sweeper.

Cancels Pending bookings whose hold lapsed without a confirm or cancel. A
sweep is a single UPDATE that only moves rows out of Pending, so running it
twice, or from several processes at once, is harmless.

``run`` is the in-process loop started by the API lifespan. It wakes at
``sweep_hour`` in the reference zone, recomputing the next tick from the
clock every iteration. The Celery beat task calls ``sweep_once`` directly.
"""

from contextlib import AbstractContextManager
from datetime import datetime
import logging
import threading
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock, system_clock
from ..core.timezone_utils import next_local_run
from ..database import get_db_session
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]
WaitFn = Callable[[float], bool]


class HoldSweeper:
    """Reconciles lapsed holds on a daily schedule."""

    def __init__(
        self,
        session_factory: SessionFactory = get_db_session,
        clock: Clock = system_clock,
        sweep_hour: int = 3,
        timezone: str = "Europe/Kyiv",
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.sweep_hour = sweep_hour
        self.timezone = timezone

    def sweep_once(self) -> int:
        """Cancel every Pending booking whose hold is already in the past."""
        now = self.clock.now()
        with self.session_factory() as db:
            repository = RepositoryFactory.create_booking_repository(db)
            expired = repository.cancel_expired_holds(now)
            db.commit()
        prometheus_metrics.record_sweep(expired)
        logger.info("[HOLD-SWEEP] Cancelled %d expired pending bookings", expired)
        return expired

    def next_run_after(self, now: datetime) -> datetime:
        return next_local_run(now, self.sweep_hour, self.timezone)

    def run(self, stop_event: threading.Event, wait: Optional[WaitFn] = None) -> None:
        """
        Sweep once per day until ``stop_event`` is set.

        ``wait(seconds)`` blocks until the next tick and returns True when the
        loop should stop. It defaults to ``stop_event.wait`` so that setting the
        event interrupts the sleep immediately.
        """
        wait_fn = wait or stop_event.wait
        logger.info("[HOLD-SWEEP] Started (daily at %02d:00 %s)", self.sweep_hour, self.timezone)

        while not stop_event.is_set():
            now = self.clock.now()
            next_run = self.next_run_after(now)
            delay = max((next_run - now).total_seconds(), 0.0)
            logger.info("[HOLD-SWEEP] Next run at %s", next_run.isoformat())

            if wait_fn(delay) or stop_event.is_set():
                break

            try:
                self.sweep_once()
            except Exception:
                prometheus_metrics.record_sweep_failure()
                logger.exception("[HOLD-SWEEP] Sweep failed; retrying at the next tick")

        logger.info("[HOLD-SWEEP] Stopped")
