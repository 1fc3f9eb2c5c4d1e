"""
Backoff scheduling for retried upstream calls.
"""

import asyncio
import random
from typing import Callable, Optional

from shared.logging import get_logger


class RetryConfig:
    """Configuration for retry behavior. Delays are in seconds."""

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 0.4,
                 increment: float = 0.5,
                 jitter: float = 0.2):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.increment = increment
        self.jitter = jitter

    @classmethod
    def from_milliseconds(cls, max_attempts: int, base_ms: int, increment_ms: int, jitter_ms: int) -> "RetryConfig":
        return cls(
            max_attempts=max_attempts,
            base_delay=base_ms / 1000.0,
            increment=increment_ms / 1000.0,
            jitter=jitter_ms / 1000.0,
        )


def is_retryable_status(status_code: Optional[int]) -> bool:
    """Rate limits and server-side failures are worth another attempt."""
    if status_code is None:
        return False
    return status_code == 429 or 500 <= status_code < 600


class BackoffScheduler:
    """Computes and waits out linear, jittered retry delays.

    The delay before retry ``attempt`` (0-indexed) is
    ``base + attempt * increment + U[0, jitter)``, so consecutive delays grow
    by at least ``increment - jitter`` and concurrent callers drift apart.
    """

    def __init__(self, config: RetryConfig, rng: Optional[Callable[[], float]] = None):
        self.config = config
        self._rng = rng or random.random
        self.logger = get_logger("advisory.backoff")

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    def base_delay_for(self, attempt: int) -> float:
        """Delay for an attempt without jitter."""
        return self.config.base_delay + attempt * self.config.increment

    def delay_for(self, attempt: int) -> float:
        """Delay for an attempt including jitter."""
        return self.base_delay_for(attempt) + self._rng() * self.config.jitter

    def has_attempts_left(self, attempt: int) -> bool:
        return attempt + 1 < self.config.max_attempts

    async def wait(self, attempt: int) -> float:
        """Suspend the current task before the next attempt and return the delay used."""
        delay = self.delay_for(attempt)
        self.logger.debug("Backing off before retry", attempt=attempt, delay=round(delay, 3))
        await asyncio.sleep(delay)
        return delay
