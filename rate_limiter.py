# ===================================
# rate_limiter.py - Sliding Window Request Admission
# ===================================

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque

from errors import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Client-side sliding-window limiter shared by every caller.

    Keeps the timestamps of admitted requests and admits a new one only while
    fewer than ``max_requests`` of them fall inside the trailing
    ``window_seconds``. State lives in memory only and starts empty on every
    process start; the upstream enforces its own quota independently.
    """

    def __init__(self, max_requests: int = 5, window_seconds: float = 60,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: Deque[float] = deque()
        self._lock = threading.Lock()
        self.admitted_total = 0
        self.rejected_total = 0

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window_seconds:
            self._timestamps.popleft()

    def try_admit(self) -> bool:
        """Record a request if the window has room; check and record happen under one lock"""
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._timestamps) >= self.max_requests:
                logger.warning(
                    f"Request rejected: {len(self._timestamps)}/{self.max_requests} "
                    f"requests in the last {self.window_seconds}s"
                )
                self.rejected_total += 1
                return False
            self._timestamps.append(now)
            self.admitted_total += 1
            return True

    def acquire(self) -> None:
        """Like try_admit, but raises RateLimitedError on rejection"""
        if not self.try_admit():
            raise RateLimitedError()

    def remaining_capacity(self) -> int:
        with self._lock:
            now = self._clock()
            recent = sum(1 for ts in self._timestamps if now - ts < self.window_seconds)
            return max(0, self.max_requests - recent)

    def reset(self) -> None:
        with self._lock:
            self._timestamps.clear()
        logger.info("Rate limiter reset")

    def get_stats(self) -> dict:
        """Snapshot used by the health endpoint"""
        return {
            "max_requests": self.max_requests,
            "window_seconds": self.window_seconds,
            "remaining": self.remaining_capacity(),
            "admitted_total": self.admitted_total,
            "rejected_total": self.rejected_total,
        }
