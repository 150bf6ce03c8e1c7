"""
Rate Limiting Middleware

Applies the sliding window limiter to API requests, keyed by client IP and
path. Blocked requests get HTTP 429 with retry headers; allowed responses
carry the current limit state.
"""

import logging
import time
from typing import Callable, Iterable, Optional

from fastapi import Request, Response, status
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from ...infrastructure.cache.exceptions import CacheStoreException
from .limiter import RATE_LIMIT_DECISIONS, RateLimitResult, SlidingWindowRateLimiter

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

LOOPBACK_ADDRESSES = frozenset({"127.0.0.1", "::1", "localhost"})


def get_client_ip(request: Request) -> str:
    """Get client IP address from request, preferring proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


class RateLimitingMiddleware(BaseHTTPMiddleware):
    """
    Rate limit requests under the given path prefixes.

    The limiter is read from ``app.state.rate_limiter`` on each request; when
    it is absent the request passes through. Store failures fail open.
    """

    def __init__(
        self,
        app,
        prefixes: Iterable[str] = ("/api",),
        exclude_paths: Optional[Iterable[str]] = None,
        enabled: bool = True,
        skip_loopback: bool = False,
    ):
        super().__init__(app)
        self.prefixes = tuple(prefixes)
        self.exclude_paths = set(
            exclude_paths or ["/health", "/health/ready", "/metrics", "/docs", "/openapi.json"]
        )
        self.enabled = enabled
        self.skip_loopback = skip_loopback

    def _applies_to(self, path: str) -> bool:
        if path in self.exclude_paths:
            return False
        return any(path == prefix or path.startswith(prefix + "/") for prefix in self.prefixes)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        limiter: Optional[SlidingWindowRateLimiter] = getattr(
            request.app.state, "rate_limiter", None
        )
        path = request.url.path
        if not self.enabled or limiter is None or not self._applies_to(path):
            return await call_next(request)

        client_ip = get_client_ip(request)
        if self.skip_loopback and client_ip in LOOPBACK_ADDRESSES:
            return await call_next(request)

        with tracer.start_as_current_span("rate_limiting_middleware.dispatch") as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.path", path)

            try:
                result = await limiter.check(f"{client_ip}:{path}")
            except CacheStoreException as e:
                RATE_LIMIT_DECISIONS.labels(outcome="error").inc()
                logger.error(f"Rate limiting unavailable, allowing request: {e}")
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                return await call_next(request)

            if not result.allowed:
                span.set_attribute("http.status_code", status.HTTP_429_TOO_MANY_REQUESTS)
                return self._create_rate_limit_response(result)

        response = await call_next(request)
        self._add_rate_limit_headers(response, result)
        return response

    def _create_rate_limit_response(self, result: RateLimitResult) -> JSONResponse:
        """Create HTTP 429 Too Many Requests response."""
        response = JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": "Too many requests",
                "details": {
                    "limit": result.limit,
                    "window": result.window,
                    "reset_seconds": result.reset_seconds,
                },
            },
        )
        self._add_rate_limit_headers(response, result)
        return response

    def _add_rate_limit_headers(self, response: Response, result: RateLimitResult) -> None:
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining_requests)
        response.headers["X-RateLimit-Reset"] = str(int(time.time()) + result.reset_seconds)
        if result.retry_after:
            response.headers["Retry-After"] = str(result.retry_after)
