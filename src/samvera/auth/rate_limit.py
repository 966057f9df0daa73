"""
samvera.auth.rate_limit

In-process token-bucket rate limiting per principal and operation.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from samvera.errors import RateLimited
from samvera.observability.logging import get_logger

log = get_logger(__name__)


@dataclass
class TokenBucket:
    capacity: int
    refill_rate: float  # tokens per second
    tokens: float
    updated_at: float

    def consume(self, now: float, amount: int = 1) -> bool:
        elapsed = now - self.updated_at
        self.updated_at = now
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        if self.tokens >= amount:
            self.tokens -= amount
            return True
        return False


class RateLimiter:
    def __init__(
        self,
        *,
        requests_per_minute: int,
        burst: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._refill_rate = requests_per_minute / 60.0
        self._burst = max(burst, 1)
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}
        # Seconds for an empty bucket to refill completely.
        self._idle_after = self._burst / self._refill_rate
        self._next_sweep = clock() + self._idle_after

    def __len__(self) -> int:
        return len(self._buckets)

    def check(self, identity: str, endpoint: str) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self.prune(now)

        key = f"{identity}:{endpoint}"
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = TokenBucket(
                capacity=self._burst,
                refill_rate=self._refill_rate,
                tokens=self._burst,
                updated_at=now,
            )
            self._buckets[key] = bucket
        if not bucket.consume(now):
            retry = max(1.0, (1 - bucket.tokens) / bucket.refill_rate)
            log.warning("rate_limit.exceeded", identity=identity, endpoint=endpoint, retry_after=retry)
            raise RateLimited(retry_after=retry)

    def prune(self, now: float | None = None) -> int:
        """
        Drop buckets idle long enough to have refilled to capacity.

        Such a bucket behaves exactly like a fresh one, so forgetting it changes no
        decision. Returns the number of buckets removed.
        """

        now = self._clock() if now is None else now
        idle = [k for k, b in self._buckets.items() if now - b.updated_at >= self._idle_after]
        for key in idle:
            del self._buckets[key]
        self._next_sweep = now + self._idle_after
        if idle:
            log.debug("rate_limit.pruned", buckets=len(idle), remaining=len(self._buckets))
        return len(idle)


# --- Module Notes -----------------------------------------------------------
# Buckets live on the process (one limiter per app, created at startup). Multiple
# workers each enforce their own budget. Memory is bounded by the identities and
# endpoints seen within one refill window, since `check` sweeps idle buckets once
# per window.
