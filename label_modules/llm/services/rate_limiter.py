"""
Minimum-interval gate for outbound model calls.

One instance is built per process and handed to every service that talks to the
vision model, so concurrent requests share the same interval. Callers are
delayed, never dropped.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class MinIntervalRateLimiter:
    def __init__(
        self,
        min_interval_s: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if min_interval_s < 0:
            raise ValueError("min_interval_s must be >= 0")
        self.min_interval_s = min_interval_s
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: Optional[float] = None

    def acquire(self) -> float:
        """Block until the interval since the previous call has elapsed.

        Returns the number of seconds this caller waited. The lock is held while
        sleeping so waiting callers are released one interval apart.
        """
        with self._lock:
            waited = 0.0
            if self._last_call is not None:
                wait = self._last_call + self.min_interval_s - self._clock()
                if wait > 0:
                    self._sleep(wait)
                    waited = wait
            self._last_call = self._clock()
            return waited
