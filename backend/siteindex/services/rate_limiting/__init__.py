"""
Rate Limiting Services

Sliding window rate limiting for API requests.
"""

from .limiter import RateLimitConfig, RateLimitResult, SlidingWindowRateLimiter
from .middleware import RateLimitingMiddleware, get_client_ip

__all__ = [
    "RateLimitConfig",
    "RateLimitResult",
    "SlidingWindowRateLimiter",
    "RateLimitingMiddleware",
    "get_client_ip",
]
