"""Injectable source of the current UTC instant."""

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime:
        """Return the current instant as aware UTC."""
        ...


class SystemClock:
    """Wall clock used in production."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


system_clock = SystemClock()
