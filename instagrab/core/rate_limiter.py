"""Spacing and cooldown for page loads on instagram.com."""

import asyncio
import random
import time
from typing import Awaitable, Callable, Optional

from instagrab.utils.config import (
    RATE_LIMIT_COOLDOWN,
    RATE_LIMIT_MAX_COOLDOWN,
    REQUEST_DELAY,
    REQUEST_JITTER,
)
from instagrab.utils.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Gate in front of every page load, shared by the HTTP and browser paths.

    Two rules apply before a request may go out:

    - consecutive requests are at least ``delay`` (plus or minus ``jitter``)
      seconds apart;
    - after Instagram answers 429, nothing goes out until the cooldown has
      passed. Each further 429 doubles the cooldown up to ``max_cooldown``;
      a request that gets through resets it.

    A delay of 0 disables spacing but not the cooldown.
    """

    def __init__(
        self,
        delay: float = REQUEST_DELAY,
        jitter: float = REQUEST_JITTER,
        cooldown: float = RATE_LIMIT_COOLDOWN,
        max_cooldown: float = RATE_LIMIT_MAX_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delay = delay
        self.jitter = jitter
        self.cooldown = cooldown
        self.max_cooldown = max_cooldown
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()

        self.last_request_time: Optional[float] = None
        self.blocked_until: Optional[float] = None
        self._penalty = 0.0
        self.request_count = 0
        self.rate_limited_count = 0

    def _spacing(self) -> float:
        if self.delay <= 0:
            return 0.0
        return max(0.0, self.delay + random.uniform(-self.jitter, self.jitter))

    async def wait(self) -> None:
        """Block until the next page load is allowed."""
        async with self._lock:
            now = self._clock()
            pause = 0.0

            if self.blocked_until is not None and now < self.blocked_until:
                pause = self.blocked_until - now
                logger.info(f"Rate limited by Instagram, cooling down {pause:.1f}s")
            elif self.last_request_time is not None:
                pause = max(0.0, self._spacing() - (now - self.last_request_time))

            if pause > 0:
                logger.debug(f"Rate limiting: waiting {pause:.2f}s")
                await self._sleep(pause)

            self.last_request_time = self._clock()
            self.request_count += 1

    def penalize(self) -> float:
        """
        Record a 429 from Instagram and start (or extend) the cooldown.

        Returns:
            Cooldown length in seconds
        """
        self._penalty = min(self.max_cooldown, self._penalty * 2 if self._penalty else self.cooldown)
        self.blocked_until = self._clock() + self._penalty
        self.rate_limited_count += 1
        logger.warning(f"Instagram returned 429, pausing requests for {self._penalty:.0f}s")
        return self._penalty

    def relax(self) -> None:
        """A request went through; the next 429 starts from the base cooldown."""
        self._penalty = 0.0
        self.blocked_until = None

    def get_stats(self) -> dict:
        return {
            "total_requests": self.request_count,
            "rate_limited": self.rate_limited_count,
            "current_cooldown": self._penalty,
        }


_global_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Process-wide limiter used when none is injected."""
    global _global_limiter
    if _global_limiter is None:
        _global_limiter = RateLimiter()
    return _global_limiter
