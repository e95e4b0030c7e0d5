"""
Thread-safe request pacing for the geocoding API.

Geocoding groups run several requests at once; each worker calls wait()
before its HTTP request so the sustained rate across all threads stays under
the configured limit.
"""

import logging
import threading
import time

logger = logging.getLogger(__name__)


class RateLimiter:
    """Spaces calls at least 1/requests_per_second apart across threads."""

    def __init__(self, requests_per_second: float, name: str = ""):
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self.min_interval = 1.0 / requests_per_second
        self.name = name or f"limiter({requests_per_second}/s)"
        self._next_allowed = 0.0
        self._lock = threading.Lock()

    def wait(self) -> float:
        """
        Reserve the next slot and sleep until it arrives.

        The slot is reserved under the lock but the sleep happens outside it,
        so concurrent callers queue up at min_interval spacing.

        Returns:
            Seconds waited.
        """
        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_allowed)
            self._next_allowed = slot + self.min_interval
            wait_time = slot - now

        if wait_time > 0:
            logger.debug(f"[{self.name}] Rate limiting: waiting {wait_time:.3f}s")
            time.sleep(wait_time)
        return wait_time

    def hold(self, seconds: float) -> None:
        """Push the next allowed slot back, e.g. after OVER_QUERY_LIMIT."""
        with self._lock:
            self._next_allowed = max(self._next_allowed, time.monotonic() + seconds)
        logger.info(f"[{self.name}] Holding requests for {seconds:.1f}s")

    def __enter__(self):
        self.wait()
        return self

    def __exit__(self, *args):
        pass
