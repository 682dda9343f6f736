"""
Clock -- injectable time source.

Responsibility:
    Services that need "today" (default snapshot date, default KPI window,
    default performance window end) or "now" (handler statistics, alert and
    audit timestamps) receive a Clock instead of calling ``datetime.now()``
    or ``date.today()`` directly.

Architecture position:
    Kernel > Domain -- pure, zero I/O except SystemClock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today()`` is the UTC calendar date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def now_utc(self) -> datetime:
        """Get the current UTC time."""
        return self.now().astimezone(timezone.utc)

    def today(self) -> date:
        """Get the current UTC calendar date."""
        return self.now_utc().date()


class SystemClock(Clock):
    """Production clock returning the actual system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value until ``advance()`` or ``set_time()``
    is called.  Naive datetimes are treated as UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0

    def now(self) -> datetime:
        current = self._fixed_time + timedelta(seconds=self._advance_seconds)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance_seconds = 0

    def advance(self, seconds: int = 1) -> None:
        """Advance the clock by the specified seconds."""
        self._advance_seconds += seconds

    def advance_days(self, days: int = 1) -> None:
        """Advance the clock by whole days."""
        self.advance(days * 86_400)

    def tick(self) -> datetime:
        """Advance by 1 second and return the new time."""
        self.advance(1)
        return self.now()
