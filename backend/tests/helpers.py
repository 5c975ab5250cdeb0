"""Shared test helpers: a controllable clock and small time/header builders."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Dict


class FakeClock:
    """Clock whose time only moves when a test says so."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        self._now = now


def at(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC instant on ``day`` at ``hour:minute``."""
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
