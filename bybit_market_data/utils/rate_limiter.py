"""
Rate limiter for market data requests.
Sliding-window limiter with separate buckets for public and signed requests.
"""

from __future__ import annotations

import time
import threading
from collections import deque


class RateLimiter:
    """
    Sliding-window rate limiter.

    Thread-safe. acquire() blocks the calling thread, so async callers
    run it on a worker thread together with the request itself.
    """

    def __init__(self, max_calls: int, period: float = 1.0):
        """
        Initialize rate limiter.

        Args:
            max_calls: Maximum number of calls allowed per period
            period: Window length in seconds (default 1.0)
        """
        if max_calls <= 0:
            raise ValueError(f"max_calls must be positive, got {max_calls}")
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")

        self.max_calls = max_calls
        self.period = period

        self._lock = threading.Lock()
        self._call_times: deque = deque()

    def _evict(self, now: float):
        cutoff = now - self.period
        while self._call_times and self._call_times[0] <= cutoff:
            self._call_times.popleft()

    def acquire(self, timeout: float | None = None) -> bool:
        """
        Acquire permission to make a request.
        Blocks until a slot is available or timeout is reached.

        Args:
            timeout: Maximum time to wait in seconds (None = wait forever)

        Returns:
            True if acquired, False if timed out
        """
        start_time = time.monotonic()

        while True:
            with self._lock:
                now = time.monotonic()
                self._evict(now)

                if len(self._call_times) < self.max_calls:
                    self._call_times.append(now)
                    return True

                wait_time = self._call_times[0] + self.period - now

            if timeout is not None:
                elapsed = time.monotonic() - start_time
                if elapsed >= timeout:
                    return False
                wait_time = min(wait_time, timeout - elapsed)

            # Max 100ms sleep at a time
            time.sleep(min(wait_time + 0.001, 0.1))

    def try_acquire(self) -> bool:
        """
        Try to acquire permission without blocking.

        Returns:
            True if acquired, False if rate limited
        """
        with self._lock:
            now = time.monotonic()
            self._evict(now)

            if len(self._call_times) < self.max_calls:
                self._call_times.append(now)
                return True

            return False

    def wait_time(self) -> float:
        """Estimated seconds until a slot is available (0 if available now)."""
        with self._lock:
            now = time.monotonic()
            self._evict(now)

            if len(self._call_times) < self.max_calls:
                return 0.0
            return max(0.0, self._call_times[0] + self.period - now)

    def reset(self):
        """Reset the rate limiter (clear all timestamps)."""
        with self._lock:
            self._call_times.clear()


class MultiRateLimiter:
    """
    Named rate limiters for different request categories.

    Bybit limits public market data per IP and signed requests per UID.
    """

    def __init__(self):
        self._limiters: dict[str, RateLimiter] = {}
        self._lock = threading.Lock()

    def add_limiter(self, name: str, max_calls: int, period: float = 1.0) -> RateLimiter:
        """Add a new rate limiter category."""
        with self._lock:
            limiter = RateLimiter(max_calls, period)
            self._limiters[name] = limiter
            return limiter

    def get_limiter(self, name: str) -> RateLimiter | None:
        """Get a rate limiter by name."""
        return self._limiters.get(name)

    def acquire(self, name: str, timeout: float | None = None) -> bool:
        """Acquire from a specific limiter."""
        limiter = self._limiters.get(name)
        if limiter:
            return limiter.acquire(timeout)
        return True  # No limiter = no limit


def create_bybit_limiters(public_rps: int = 100, private_rps: int = 40) -> MultiRateLimiter:
    """
    Create rate limiters configured for Bybit V5 API limits.

    Bybit V5 Rate Limits (per docs):
    - IP Limit: 600 requests per 5-second window (120/s effective)
    - Signed market/account requests: 50/s per UID

    Defaults leave buffer room below both.
    """
    limiters = MultiRateLimiter()
    limiters.add_limiter("public", max_calls=public_rps, period=1.0)
    limiters.add_limiter("private", max_calls=private_rps, period=1.0)
    return limiters
