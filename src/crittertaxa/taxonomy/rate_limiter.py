"""Admission control for outbound API requests.

One ``RateLimiter`` instance exists per upstream service and is shared by every
caller in the process. It never rejects a request: callers are suspended until
a slot inside the window frees up, then wait a short random jitter so that
queued callers do not fire in lockstep.
"""

import asyncio
import logging
import random
import threading
import time
from collections import deque
from collections.abc import Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window limiter admitting at most ``max_requests`` per ``period`` seconds.

    Admission slots are reserved under a lock, so concurrent callers (from any
    thread or task) each get a distinct slot; the wait itself happens outside
    the lock with ``asyncio.sleep``.
    """

    def __init__(
        self,
        max_requests: int = 60,
        period: float = 60.0,
        jitter_min: float = 0.05,
        jitter_max: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the limiter.

        Args:
            max_requests: Requests admitted per window
            period: Window length in seconds
            jitter_min: Lower bound of the post-admission delay in seconds
            jitter_max: Upper bound of the post-admission delay in seconds
            clock: Monotonic clock, injectable for tests
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if period <= 0:
            raise ValueError("period must be positive")
        if jitter_min < 0 or jitter_max < jitter_min:
            raise ValueError("jitter bounds must satisfy 0 <= jitter_min <= jitter_max")

        self.max_requests = max_requests
        self.period = period
        self.jitter_min = jitter_min
        self.jitter_max = jitter_max
        self._clock = clock
        self._lock = threading.Lock()
        self._slots: deque[float] = deque()

    @classmethod
    def per_minute(cls, requests: int, jitter_min_ms: int = 50, jitter_max_ms: int = 250):
        """Build a limiter from a per-minute quota and a jitter range in milliseconds."""
        return cls(
            max_requests=requests,
            period=60.0,
            jitter_min=jitter_min_ms / 1000,
            jitter_max=jitter_max_ms / 1000,
        )

    def reserve(self) -> float:
        """Reserve the next admission slot.

        Returns:
            Seconds the caller has to wait before its slot opens (0 when free)
        """
        with self._lock:
            now = self._clock()
            horizon = now - self.period
            while self._slots and self._slots[0] <= horizon:
                self._slots.popleft()

            if len(self._slots) < self.max_requests:
                slot = now
            else:
                slot = max(now, self._slots[-self.max_requests] + self.period)

            self._slots.append(slot)
            return slot - now

    def jitter(self) -> float:
        return random.uniform(self.jitter_min, self.jitter_max)

    async def acquire(self) -> None:
        """Wait until a request may be sent."""
        delay = self.reserve()
        if delay > 0:
            logger.debug("Rate limit reached, waiting %.2fs for a slot", delay)
        await asyncio.sleep(delay + self.jitter())
