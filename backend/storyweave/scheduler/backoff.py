from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from storyweave.utils.dates import utcnow


class RecheckState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    BACKOFF = "backoff"


class RateLimitBackoff:
    """
    Exponential backoff after rate-limit responses

    States:
        idle: runs may proceed
        backoff: entered by record_rate_limit(), left once the delay
            has elapsed; runs are skipped meanwhile

    The n-th consecutive rate limit waits min(base * 2^(n-1), cap).
    record_success() resets the count.
    """

    def __init__(
        self,
        base_delay: timedelta = timedelta(minutes=5),
        max_delay: timedelta = timedelta(minutes=60),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._clock = clock
        self.consecutive_errors = 0
        self.backoff_until: Optional[datetime] = None

    def current_delay(self) -> timedelta:
        if self.consecutive_errors == 0:
            return timedelta(0)
        return min(self.base_delay * (2 ** (self.consecutive_errors - 1)), self.max_delay)

    def record_rate_limit(self) -> timedelta:
        self.consecutive_errors += 1
        delay = self.current_delay()
        self.backoff_until = self._clock() + delay
        logger.warning(
            f"Rate limited ({self.consecutive_errors} in a row), "
            f"backing off for {delay.total_seconds() / 60:.0f} minutes"
        )
        return delay

    def record_success(self):
        if self.consecutive_errors:
            logger.info("Rate limit backoff reset")
        self.consecutive_errors = 0
        self.backoff_until = None

    def should_skip(self) -> bool:
        return self.backoff_until is not None and self._clock() < self.backoff_until

    def remaining_seconds(self) -> float:
        if not self.should_skip():
            return 0.0
        return (self.backoff_until - self._clock()).total_seconds()

    @property
    def state(self) -> RecheckState:
        return RecheckState.BACKOFF if self.should_skip() else RecheckState.IDLE
