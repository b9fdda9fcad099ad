"""
Rate limiter with configurable strategies.

Provides thread-safe rate limiting with distributed and burst strategies.
Uses a sliding window approach for accurate rate limiting. OpenDota detail
requests and Steam market page requests each get their own instance.
"""

import time
import random
import threading
from collections import deque
from typing import Literal, Dict, Any
from enum import Enum

from .logger import get_utils_logger

logger = get_utils_logger()


class RateLimitStrategy(Enum):
    """Rate limiting strategies."""
    DISTRIBUTED = "distributed"  # Spread requests evenly across window
    BURST = "burst"  # Allow rapid requests until limit


class RateLimiter:
    """
    Thread-safe rate limiter with configurable strategies.

    Uses a sliding window approach to track requests and enforce limits.
    An optional random jitter is added on top of the distributed spacing so
    scraped pages are not requested on an exact cadence.
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_seconds: float = 3600,
        strategy: Literal["distributed", "burst"] = "distributed",
        jitter_seconds: float = 0.0,
        name: str = "default"
    ):
        """
        Initialize rate limiter.

        Args:
            max_requests: Maximum number of requests allowed per window
            window_seconds: Time window in seconds
            strategy: Rate limiting strategy ("distributed" or "burst")
            jitter_seconds: Upper bound of a random extra wait per request
            name: Label used in log messages
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.strategy = RateLimitStrategy(strategy)
        self.jitter_seconds = jitter_seconds
        self.name = name

        self._lock = threading.Lock()
        self._request_times: deque = deque()

        # Distributed strategy: minimum interval between requests
        self._min_interval = window_seconds / max_requests if strategy == "distributed" else 0
        self._last_request_time = None

        logger.debug(
            f"RateLimiter[{name}] initialized: {max_requests} requests per {window_seconds}s "
            f"using {strategy} strategy"
        )

    def _evict(self, now: float) -> None:
        cutoff_time = now - self.window_seconds
        while self._request_times and self._request_times[0] < cutoff_time:
            self._request_times.popleft()

    def wait_if_needed(self) -> float:
        """
        Wait if necessary to comply with the rate limit.

        This method blocks until it's safe to proceed with the next request.
        The first request never waits.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        with self._lock:
            now = time.monotonic()
            self._evict(now)

            if self.strategy == RateLimitStrategy.DISTRIBUTED and self._last_request_time is not None:
                time_since_last = now - self._last_request_time
                wait_time = self._min_interval - time_since_last
                if self.jitter_seconds > 0:
                    wait_time += random.uniform(0, self.jitter_seconds)
                if wait_time > 0:
                    logger.debug(f"RateLimiter[{self.name}]: waiting {wait_time:.2f}s for minimum interval")
                    time.sleep(wait_time)
                    waited += wait_time
                    now = time.monotonic()

            if len(self._request_times) >= self.max_requests:
                # Wait until the oldest request falls out of the window
                oldest_request = self._request_times[0]
                wait_time = (oldest_request + self.window_seconds) - now

                if wait_time > 0:
                    logger.info(
                        f"RateLimiter[{self.name}]: limit reached ({len(self._request_times)}/{self.max_requests} requests). "
                        f"Waiting {wait_time:.2f}s..."
                    )
                    time.sleep(wait_time)
                    waited += wait_time
                    now = time.monotonic()
                    self._evict(now)

            self._request_times.append(now)
            self._last_request_time = now

        return waited

    def get_stats(self) -> Dict[str, Any]:
        """
        Get current rate limiter statistics.

        Returns:
            Dictionary with statistics:
                - requests_in_window: Number of requests in current window
                - max_requests: Maximum allowed requests
                - window_seconds: Window duration in seconds
                - strategy: Current strategy
                - time_until_reset: Seconds until oldest request expires
        """
        with self._lock:
            now = time.monotonic()
            self._evict(now)

            time_until_reset = None
            if self._request_times:
                oldest_request = self._request_times[0]
                time_until_reset = max(0, (oldest_request + self.window_seconds) - now)

            return {
                "name": self.name,
                "requests_in_window": len(self._request_times),
                "max_requests": self.max_requests,
                "window_seconds": self.window_seconds,
                "strategy": self.strategy.value,
                "time_until_reset": time_until_reset
            }

    def reset(self) -> None:
        """Reset the rate limiter state (clear all tracked requests)."""
        with self._lock:
            self._request_times.clear()
            self._last_request_time = None
            logger.debug(f"RateLimiter[{self.name}] reset")
