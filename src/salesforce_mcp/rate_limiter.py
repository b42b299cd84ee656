"""
Token bucket rate limiter for tool calls.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    # Seconds until one more token is available
    reset_after: float
    retry_after: Optional[float] = None


class RateLimiter:
    """Allows `limit` calls per `window_seconds`, with bursts up to `burst_allowance`."""

    def __init__(
        self,
        limit: int = 60,
        window_seconds: float = 60.0,
        burst_allowance: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit <= 0 or window_seconds <= 0 or burst_allowance <= 0:
            raise ValueError("limit, window_seconds and burst_allowance must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self.burst_allowance = burst_allowance
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = float(burst_allowance)
        self._last_refill = clock()
        self._tokens_per_second = limit / window_seconds

    def check_limit(self) -> RateLimitResult:
        """Consume a token if one is available."""
        with self._lock:
            self._refill()
            if self._tokens >= 1:
                self._tokens -= 1
                return RateLimitResult(
                    allowed=True,
                    remaining=math.floor(self._tokens),
                    reset_after=self._seconds_per_token(),
                )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_after=self._seconds_per_token(),
                retry_after=(1 - self._tokens) / self._tokens_per_second,
            )

    def get_status(self) -> RateLimitResult:
        """Current state without consuming a token."""
        with self._lock:
            self._refill()
            return RateLimitResult(
                allowed=self._tokens >= 1,
                remaining=math.floor(self._tokens),
                reset_after=self._seconds_per_token(),
            )

    def _refill(self):
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self.burst_allowance, self._tokens + elapsed * self._tokens_per_second)
            self._last_refill = now

    def _seconds_per_token(self) -> float:
        return 1 / self._tokens_per_second
