"""
Clock - Single Source of Truth for Time
---------------------------------------
Abstracts "now" so cache expiry, news recency and alert timestamps can be
replayed deterministically.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
import pytz


class Clock(ABC):
    """
    Abstract base class for all clocks.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Returns the current 'system' time."""
        pass

    def now_ms(self) -> int:
        """Current time as epoch milliseconds, the unit used by bars and news."""
        return int(self.now().timestamp() * 1000)


class RealTimeClock(Clock):
    """
    Wall-clock implementation used in production.
    """

    def __init__(self, timezone: str = 'UTC'):
        self.tz = pytz.timezone(timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class ReplayClock(Clock):
    """
    Clock implementation for tests and historical replay.
    Time only advances when manually stepped.
    """

    def __init__(self, start_time: datetime):
        if start_time.tzinfo is None:
            start_time = pytz.utc.localize(start_time)
        self._current_time = start_time

    def now(self) -> datetime:
        return self._current_time

    def set_time(self, dt: datetime):
        """Manually move the clock."""
        if dt.tzinfo is None:
            dt = pytz.utc.localize(dt)
        self._current_time = dt

    def advance(self, delta: timedelta):
        """Advance the clock by a duration."""
        self._current_time += delta
