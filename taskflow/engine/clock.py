"""Injectable clocks.

All engine timestamps are naive UTC datetimes, matching what the database
layer stores.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock (naive UTC)."""

    def now(self) -> datetime:
        return datetime.utcnow()


class FixedClock:
    """Deterministic clock for tests and replays."""

    def __init__(self, now: datetime):
        self._now = as_naive_utc(now)

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = as_naive_utc(now)

    def advance(self, delta: Optional[timedelta] = None, **kwargs) -> datetime:
        """Move the clock forward by ``delta`` or ``timedelta(**kwargs)``."""
        self._now = self._now + (delta if delta is not None else timedelta(**kwargs))
        return self._now


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert timezone-aware datetimes to naive UTC; pass naive values through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
