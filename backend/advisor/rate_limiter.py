"""
Rate Limiter
Throttles outbound completion requests to stay under the provider's
requests-per-minute quota.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from config import RATE_LIMIT_PER_MINUTE, RATE_LIMIT_MIN_INTERVAL


logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed-window request limiter shared by every CompletionClient.

    Construct one per process and hand it to each client; independent
    instances never share state.
    """

    def __init__(
        self,
        max_per_window: int = RATE_LIMIT_PER_MINUTE,
        min_interval: float = RATE_LIMIT_MIN_INTERVAL,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_per_window = max_per_window
        self.min_interval = min_interval
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()

        self.window_start: Optional[float] = None
        self.requests_in_window = 0
        self.last_request: Optional[float] = None

    async def acquire(self) -> None:
        """Wait until one more request may be sent, then count it."""
        async with self._lock:
            now = self._clock()
            elapsed = now - self.window_start if self.window_start is not None else self.window

            if elapsed >= self.window:
                self.requests_in_window = 0
                self.window_start = now
                elapsed = 0.0

            if self.requests_in_window >= self.max_per_window:
                wait = self.window - elapsed
                logger.info(
                    "Rate limit of %d requests/window reached, waiting %.2fs",
                    self.max_per_window, wait
                )
                await self._sleep(wait)
                self.requests_in_window = 0
                self.window_start = self._clock()

            if self.last_request is not None:
                since_last = self._clock() - self.last_request
                if since_last < self.min_interval:
                    await self._sleep(self.min_interval - since_last)

            self.requests_in_window += 1
            self.last_request = self._clock()

    def mark_done(self) -> None:
        """Record that the request holding the most recent slot has finished."""
        self.last_request = self._clock()

    @property
    def remaining(self) -> int:
        """Requests left in the current window (without waiting)."""
        if self.window_start is None or self._clock() - self.window_start >= self.window:
            return self.max_per_window
        return max(self.max_per_window - self.requests_in_window, 0)
