"""
Request Rate Limiter
====================
Process-wide limiter for outbound translation API calls.

Uses a sliding one-minute window plus a minimum spacing between calls.
Every job running in this process shares one instance.
"""
import threading
import time
from collections import deque
from typing import Callable, Optional

from shop_translator.config import config
from shop_translator.utils.logging import get_logger

WINDOW_SECONDS = 60.0


class RequestRateLimiter:
    """Blocking sliding-window limiter."""

    def __init__(
        self,
        requests_per_minute: int = None,
        min_interval: float = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.requests_per_minute = requests_per_minute or config.translation.max_requests_per_minute
        self.min_interval = min_interval if min_interval is not None else config.translation.min_request_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._timestamps: deque = deque()
        self.logger = get_logger().translation_logger

    def _cleanup_old_requests(self, now: float) -> None:
        window_start = now - WINDOW_SECONDS
        while self._timestamps and self._timestamps[0] <= window_start:
            self._timestamps.popleft()

    def _wait_time(self, now: float) -> float:
        self._cleanup_old_requests(now)
        wait = 0.0
        if len(self._timestamps) >= self.requests_per_minute:
            wait = self._timestamps[0] + WINDOW_SECONDS - now
        if self._timestamps and self.min_interval > 0:
            wait = max(wait, self._timestamps[-1] + self.min_interval - now)
        return max(wait, 0.0)

    def acquire(self) -> float:
        """
        Block until a request may be sent, then record it.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        while True:
            with self._lock:
                now = self._clock()
                wait = self._wait_time(now)
                if wait <= 0:
                    self._timestamps.append(now)
                    if waited:
                        self.logger.debug(f"Rate limiter delayed request by {waited:.2f}s")
                    return waited
            self._sleep(wait)
            waited += wait

    def stats(self) -> dict:
        with self._lock:
            now = self._clock()
            self._cleanup_old_requests(now)
            used = len(self._timestamps)
        return {
            'limit': self.requests_per_minute,
            'used': used,
            'remaining': max(0, self.requests_per_minute - used),
            'minInterval': self.min_interval,
        }


# Global limiter instance
_limiter_instance: Optional[RequestRateLimiter] = None


def get_rate_limiter() -> RequestRateLimiter:
    """Get or create the process-wide limiter."""
    global _limiter_instance
    if _limiter_instance is None:
        _limiter_instance = RequestRateLimiter()
    return _limiter_instance
