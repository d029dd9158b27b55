"""
Client-side token bucket for extract+score round trips.

Allows ``capacity`` calls per window. The bucket refills to full once a whole
window has passed since the last refill; there is no partial refill.
"""
import threading
import time
from typing import Callable, Optional

from suppscore.config import config
from suppscore.utils.logger import LayerLogger


class TokenBucket:
    """
    Fixed-window token bucket.

    Owned by one orchestrator instance; a lock keeps ``try_consume`` atomic
    across threads and event loops.
    """

    def __init__(
        self,
        capacity: Optional[int] = None,
        window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            capacity: tokens available per window (default 5)
            window_seconds: refill window (default 60s)
            clock: time source in seconds, injectable for tests
        """
        self.capacity = capacity if capacity is not None else config.RATE_LIMIT_CAPACITY
        self.window_seconds = (
            window_seconds if window_seconds is not None else config.RATE_LIMIT_WINDOW_SECONDS
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens = self.capacity
        self._last_refill_at = clock()
        self.logger = LayerLogger("rate_limit")

    @property
    def tokens(self) -> int:
        with self._lock:
            self._refill()
            return self._tokens

    def seconds_until_refill(self) -> float:
        with self._lock:
            return max(0.0, self._last_refill_at + self.window_seconds - self._clock())

    def try_consume(self) -> bool:
        """Take one token. Returns False, without waiting, when the bucket is empty."""
        with self._lock:
            self._refill()
            if self._tokens <= 0:
                self.logger.log_decision(
                    "rate_limited", "token bucket empty",
                    capacity=self.capacity, window_seconds=self.window_seconds,
                )
                return False
            self._tokens -= 1
            return True

    def reset(self) -> None:
        with self._lock:
            self._tokens = self.capacity
            self._last_refill_at = self._clock()

    def _refill(self) -> None:
        now = self._clock()
        if now - self._last_refill_at >= self.window_seconds:
            self._tokens = self.capacity
            self._last_refill_at = now
