"""
Clocks and deadline arithmetic for publishing windows

Every registration closes at an end_date, and whether it still accepts
submissions is decided by comparing that date with "now" at read time. The
clock is therefore injected everywhere: production reads the system clock
in UTC, tests hold a frozen clock and step it past end dates by hand.

All datetimes that cross this module are timezone-aware UTC. Naive values
are refused rather than guessed at, since a naive end_date compared with an
aware "now" would fail far from where it was created.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol

SECONDS_PER_DAY = 86400


def ensure_utc(moment: datetime) -> datetime:
    """
    Normalize a datetime to UTC

    Args:
        moment: Timezone-aware datetime in any zone

    Returns:
        The same instant expressed in UTC

    Raises:
        ValueError: If moment carries no timezone
    """
    if moment.tzinfo is None or moment.utcoffset() is None:
        raise ValueError(f"Naive datetime {moment.isoformat()} has no timezone")
    return moment.astimezone(timezone.utc)


def days_left(deadline: datetime, now: datetime) -> int:
    """Whole days until deadline, rounded up; 0 once it has passed"""
    seconds = (deadline - now).total_seconds()
    if seconds <= 0:
        return 0
    return int(-(-seconds // SECONDS_PER_DAY))


class TimeProvider(Protocol):
    """Protocol for time providers - allows deterministic testing"""

    def now(self) -> datetime:
        """Return current UTC datetime"""
        ...


class RealTimeProvider:
    """Production time provider using system clock"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class TestTimeProvider:
    """
    Controllable time provider for deterministic tests

    Time only moves when told to, so a test can sit exactly on a
    registration's end_date (still open) and then one second past it
    (expired).
    """

    __test__ = False  # collected by name otherwise

    def __init__(self, initial_time: datetime | None = None) -> None:
        """
        Initialize with optional fixed time

        Args:
            initial_time: Starting time, timezone-aware (defaults to Unix epoch)
        """
        self._current_time = (
            ensure_utc(initial_time)
            if initial_time is not None
            else datetime(1970, 1, 1, tzinfo=timezone.utc)
        )

    def now(self) -> datetime:
        return self._current_time

    def set_time(self, dt: datetime) -> None:
        self._current_time = ensure_utc(dt)

    def advance(self, delta: timedelta) -> None:
        if delta < timedelta(0):
            raise ValueError("Test time only moves forward")
        self._current_time += delta

    def advance_seconds(self, seconds: int) -> None:
        self.advance(timedelta(seconds=seconds))

    def advance_days(self, days: int) -> None:
        self.advance(timedelta(days=days))

    def advance_past(self, deadline: datetime, seconds: int = 1) -> None:
        """
        Jump to just after a deadline

        Args:
            deadline: Usually a registration's end_date
            seconds: How far past the deadline to land
        """
        self.set_time(ensure_utc(deadline) + timedelta(seconds=seconds))
