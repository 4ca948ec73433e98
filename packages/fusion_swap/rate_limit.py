"""
Token bucket rate limiting for the 1inch API, keyed per endpoint
"""
import logging
import time
from typing import Awaitable, Callable, Optional

from .cancellation import CancelToken
from .config import RateLimit


logger = logging.getLogger("fusion_swap.rate_limit")


class TokenBucket:
    """
    Classic token bucket

    Tokens refill continuously at `rate` per second up to `capacity`;
    each request takes one token.
    """

    def __init__(
        self,
        rate: float,
        capacity: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if rate <= 0:
            raise ValueError(f"Rate must be positive, got {rate}")
        if capacity < 1:
            raise ValueError(f"Capacity must be at least one request, got {capacity}")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._tokens = capacity
        self._updated = clock()

    def _refill(self):
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    def try_acquire(self) -> float:
        """
        Take a token if one is available

        Returns:
            0 when a token was taken, otherwise the seconds to wait
        """
        self._refill()
        if self._tokens >= 1:
            self._tokens -= 1
            return 0.0
        return (1 - self._tokens) / self.rate


class EndpointRateLimiter:
    """
    One bucket per endpoint plus an optional shared "global" bucket

    Endpoints without an entry in `limits` are only bound by "global".
    """

    GLOBAL = "global"

    def __init__(
        self,
        limits: dict[str, RateLimit],
        cancel_token: Optional[CancelToken] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.cancel_token = cancel_token or CancelToken()
        self._sleep = sleep or self.cancel_token.sleep
        self._buckets = {
            name: TokenBucket(limit.rate, limit.capacity, clock=clock)
            for name, limit in limits.items()
        }

    def buckets_for(self, endpoint: str) -> list[TokenBucket]:
        names = [self.GLOBAL, endpoint] if endpoint != self.GLOBAL else [self.GLOBAL]
        return [self._buckets[name] for name in names if name in self._buckets]

    async def acquire(self, endpoint: str):
        """Wait until every bucket that applies to `endpoint` grants a token"""
        for bucket in self.buckets_for(endpoint):
            while True:
                wait = bucket.try_acquire()
                if wait == 0:
                    break
                logger.debug(f"Rate limited on {endpoint}, waiting {wait:.2f}s")
                await self._sleep(wait)
