"""
Timezone utilities for the booking engine.

All instants stored or compared by the engine are timezone-aware UTC. Local
wall-clock values (working hours, the sweep hour) only exist at the edges and
are converted here.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Tuple

import pytz


@dataclass(frozen=True)
class WorkingHours:
    """Daily bookable window, expressed in a reference time zone."""

    opens_at: time
    closes_at: time
    timezone: str

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.timezone)

    def window_utc(self, day: date) -> Tuple[datetime, datetime]:
        """
        Return the [open, close) window for ``day`` as UTC instants.

        DST-aware: a 09:00 opening in Europe/Kyiv is 07:00Z in winter and
        06:00Z in summer.
        """
        tz = self.tz
        local_open = tz.localize(datetime.combine(day, self.opens_at))
        local_close = tz.localize(datetime.combine(day, self.closes_at))
        return local_open.astimezone(pytz.UTC), local_close.astimezone(pytz.UTC)


def ensure_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to aware UTC.

    Naive values are interpreted as UTC.
    """
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def floor_to_step(dt: datetime, step_minutes: int) -> datetime:
    """
    Normalize a requested start: convert to UTC, drop seconds and below,
    then floor the minute to the slot grid.

    >>> floor_to_step(datetime(2025, 1, 1, 10, 17, 42, tzinfo=pytz.UTC), 30)
    datetime.datetime(2025, 1, 1, 10, 0, tzinfo=<UTC>)
    """
    utc = ensure_utc(dt).replace(second=0, microsecond=0)
    minutes_into_day = utc.hour * 60 + utc.minute
    aligned = minutes_into_day - (minutes_into_day % step_minutes)
    return utc.replace(hour=0, minute=0) + timedelta(minutes=aligned)


def next_local_run(now: datetime, hour: int, timezone: str) -> datetime:
    """
    Next occurrence of ``hour``:00 in ``timezone`` strictly after ``now``, in UTC.

    Recomputed from ``now`` on every call, so a restarted loop lands on the
    right tick without remembering anything.
    """
    tz = pytz.timezone(timezone)
    local_now = ensure_utc(now).astimezone(tz)
    candidate_day = local_now.date()
    while True:
        candidate = tz.localize(datetime.combine(candidate_day, time(hour, 0)))
        if candidate > local_now:
            return candidate.astimezone(pytz.UTC)
        candidate_day += timedelta(days=1)
