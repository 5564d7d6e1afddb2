"""Request pacing for the weather provider.

Token bucket with a capacity of one by default, which turns a rate of N
requests per second into a minimum gap of 1/N seconds between calls.
The clock and sleep function are injectable so pacing can be tested
without waiting.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from src.shared.config.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PacingMetrics:
    """Counters for pacing behaviour."""

    total_requests: int = 0
    throttled_requests: int = 0
    total_wait_time: float = 0.0

    @property
    def avg_wait_time(self) -> float:
        if self.throttled_requests == 0:
            return 0.0
        return self.total_wait_time / self.throttled_requests

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["avg_wait_time"] = self.avg_wait_time
        return data


class TokenBucket:
    """Thread-safe token bucket.

    The bucket starts full and refills at `rate` tokens per second up to
    `capacity`. acquire() blocks until a token is available.
    """

    def __init__(
        self,
        rate: float,
        capacity: int = 1,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize token bucket.

        Args:
            rate: Tokens added per second
            capacity: Maximum tokens held (burst size)
            name: Name for logging
            clock: Monotonic time source
            sleep: Sleep function used while throttled
        """
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")

        self.rate = rate
        self.capacity = capacity
        self.name = name
        self._clock = clock
        self._sleep = sleep

        self._tokens = float(capacity)
        self._last_update = clock()
        self._lock = threading.Lock()
        self._metrics = PacingMetrics()

        logger.debug("token_bucket_initialized", name=name, rate=rate, capacity=capacity)

    @property
    def min_interval(self) -> float:
        """Seconds between calls once the burst is spent."""
        return 1.0 / self.rate

    def _refill(self) -> None:
        # Caller holds the lock
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._last_update) * self.rate)
        self._last_update = now

    def acquire(self, tokens: int = 1) -> None:
        """Take tokens, sleeping until they are available.

        Raises:
            ValueError: If tokens exceeds capacity
        """
        if tokens > self.capacity:
            raise ValueError(f"Requested {tokens} tokens exceeds capacity {self.capacity}")

        waited = 0.0
        with self._lock:
            self._metrics.total_requests += 1

            while True:
                self._refill()
                if self._tokens >= tokens:
                    self._tokens -= tokens
                    if waited:
                        self._metrics.throttled_requests += 1
                        self._metrics.total_wait_time += waited
                    return

                wait_time = (tokens - self._tokens) / self.rate
                logger.debug("pacing_sleep", name=self.name, sleep_seconds=wait_time)

                # Release the lock while sleeping so other threads can refill-check
                self._lock.release()
                try:
                    self._sleep(wait_time)
                finally:
                    self._lock.acquire()
                waited += wait_time

    def get_metrics(self) -> PacingMetrics:
        """Copy of current metrics."""
        with self._lock:
            return PacingMetrics(**asdict(self._metrics))
