"""Hourly and daily search quotas"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional

from loguru import logger

from .config import MAX_SEARCHES_PER_DAY, MAX_SEARCHES_PER_HOUR

WINDOW = timedelta(hours=1)


@dataclass
class RateLimiterState:
    """Process-wide quota bookkeeping, owned by one SearchRateLimiter"""

    timestamps: List[datetime] = field(default_factory=list)
    day: Optional[date] = None
    daily_count: int = 0


class SearchRateLimiter:
    """
    Sliding one-hour window plus a calendar-day budget.

    ``allow()`` is side-effect free apart from purging stale bookkeeping;
    ``record()`` is called once a search is actually going to hit the site.
    Denial is silent backpressure, not an error.
    """

    def __init__(
        self,
        max_per_hour: int = MAX_SEARCHES_PER_HOUR,
        max_per_day: int = MAX_SEARCHES_PER_DAY,
        state: Optional[RateLimiterState] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize rate limiter.

        Args:
            max_per_hour: Searches allowed in any rolling hour
            max_per_day: Searches allowed per calendar day
            state: Existing state to continue from (e.g. restored after restart)
            clock: Source of the current local time
        """
        self.max_per_hour = max_per_hour
        self.max_per_day = max_per_day
        self.state = state if state is not None else RateLimiterState()
        self.clock = clock

        logger.debug(
            f"Rate limiter initialized: {max_per_hour}/hour, {max_per_day}/day"
        )

    def _purge(self, now: datetime) -> None:
        cutoff = now - WINDOW
        self.state.timestamps = [t for t in self.state.timestamps if t >= cutoff]

    def _roll_day(self, now: datetime) -> None:
        today = now.date()
        if self.state.day != today:
            if self.state.day is not None:
                logger.info(f"New day ({today}), daily search budget reset")
            self.state.day = today
            self.state.daily_count = 0

    def allow(self) -> bool:
        """Check whether another search may be issued now"""
        now = self.clock()
        self._purge(now)

        hourly = len(self.state.timestamps)
        if hourly >= self.max_per_hour:
            logger.warning(f"Hourly search limit reached: {hourly}/{self.max_per_hour}")
            return False

        self._roll_day(now)
        if self.state.daily_count >= self.max_per_day:
            logger.warning(
                f"Daily search budget exhausted: {self.state.daily_count}/{self.max_per_day}"
            )
            return False

        return True

    def record(self) -> None:
        """Count a search that is about to drive the browser"""
        now = self.clock()
        self._roll_day(now)
        self.state.timestamps.append(now)
        self.state.daily_count += 1
        logger.debug(
            f"Search recorded: {len(self.state.timestamps)}/{self.max_per_hour} this hour, "
            f"{self.state.daily_count}/{self.max_per_day} today"
        )

    def status(self) -> Dict[str, int]:
        now = self.clock()
        self._purge(now)
        self._roll_day(now)
        hourly = len(self.state.timestamps)
        return {
            "hourly_count": hourly,
            "max_per_hour": self.max_per_hour,
            "remaining_hour": max(0, self.max_per_hour - hourly),
            "daily_count": self.state.daily_count,
            "max_per_day": self.max_per_day,
            "remaining_day": max(0, self.max_per_day - self.state.daily_count),
        }
