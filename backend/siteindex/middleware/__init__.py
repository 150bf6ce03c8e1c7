"""
Middleware modules for request/response processing.
"""

from .activity import ActivityLogMiddleware
from .security import SecurityHeadersMiddleware

__all__ = [
    "ActivityLogMiddleware",
    "SecurityHeadersMiddleware",
]
