"""
Rate Limiter

Sliding window rate limiting over the shared ``CacheStore``.

Each identifier keeps one counter per fixed window. The effective count is
the current window's counter plus the previous window's counter weighted by
how much of it still overlaps the sliding window, which approximates a true
sliding log with two keys per client.
"""

import logging
import math
import time
from typing import Callable, Optional

from opentelemetry import trace
from prometheus_client import Counter
from pydantic import BaseModel, Field

from ...infrastructure.cache.store import CacheStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

RATE_LIMIT_DECISIONS = Counter(
    "siteindex_rate_limit_decisions_total",
    "Rate limit decisions by outcome",
    ["outcome"],
)


class RateLimitResult(BaseModel):
    """Result of rate limit check."""

    allowed: bool = Field(..., description="Whether request is allowed")
    current_count: int = Field(..., description="Weighted request count in the window")
    remaining_requests: int = Field(..., description="Remaining requests")
    reset_seconds: int = Field(..., description="Seconds until the current window ends")
    limit: int = Field(..., description="Rate limit threshold")
    window: int = Field(..., description="Time window in seconds")
    identifier: str = Field(..., description="Rate limit identifier")
    retry_after: Optional[int] = Field(None, description="Retry-After header value")


class RateLimitConfig(BaseModel):
    """Rate limit configuration."""

    requests_per_window: int = Field(..., ge=1, description="Number of allowed requests")
    window_seconds: int = Field(..., ge=1, description="Time window in seconds")


class SlidingWindowRateLimiter:
    """
    Sliding window limiter keyed by an arbitrary identifier.

    Every checked request is counted, including rejected ones, so a client
    that keeps retrying while blocked stays blocked.
    """

    KEY_PREFIX = "ratelimit"

    def __init__(
        self,
        store: CacheStore,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.config = config
        self._clock = clock

    @classmethod
    def from_settings(cls, store: CacheStore, settings) -> "SlidingWindowRateLimiter":
        return cls(
            store,
            RateLimitConfig(
                requests_per_window=settings.RATE_LIMIT_REQUESTS,
                window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
            ),
        )

    def _key(self, identifier: str, window_index: int) -> str:
        return f"{self.KEY_PREFIX}:{identifier}:{window_index}"

    async def check(self, identifier: str) -> RateLimitResult:
        """
        Count a request for identifier and decide whether it is allowed.

        Raises:
            CacheStoreException: If the store cannot be read or updated
        """
        limit = self.config.requests_per_window
        window = self.config.window_seconds
        now = self._clock()
        window_index = int(now // window)
        elapsed = now - window_index * window

        with tracer.start_as_current_span("rate_limiter.check") as span:
            span.set_attribute("rate_limit.identifier", identifier)

            # Counters live for two windows so the previous one can be weighted
            current = await self.store.incr(self._key(identifier, window_index), window * 2)
            previous_raw = await self.store.get(self._key(identifier, window_index - 1))
            previous = int(previous_raw) if previous_raw and previous_raw.isdigit() else 0

            weighted = previous * (window - elapsed) / window + current
            count = math.ceil(weighted)
            allowed = count <= limit
            reset_seconds = max(1, math.ceil(window - elapsed))

            span.set_attribute("rate_limit.count", count)
            span.set_attribute("rate_limit.allowed", allowed)
            RATE_LIMIT_DECISIONS.labels(outcome="allowed" if allowed else "blocked").inc()

            if not allowed:
                logger.info(f"Rate limit exceeded for {identifier}: {count}/{limit}")

            return RateLimitResult(
                allowed=allowed,
                current_count=count,
                remaining_requests=max(0, limit - count),
                reset_seconds=reset_seconds,
                limit=limit,
                window=window,
                identifier=identifier,
                retry_after=None if allowed else reset_seconds,
            )
