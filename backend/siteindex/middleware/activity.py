"""
Activity Log Middleware

Records admin requests and API writes, with the acting user, response
status and duration, through the ``ActivityLogger`` on the application
state.
"""

import time
from typing import Callable, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..services.activity_log import ActivityLogger, describe_request
from ..services.rate_limiting import get_client_ip

logger = structlog.get_logger()

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def should_record(method: str, path: str) -> bool:
    """Admin routes are always recorded; other API routes only for writes."""
    if path.startswith("/api/admin/"):
        return True
    return path.startswith("/api/") and method.upper() in WRITE_METHODS


class ActivityLogMiddleware(BaseHTTPMiddleware):
    """Append an activity log entry after each audited request."""

    def __init__(self, app, email_header: str):
        super().__init__(app)
        self.email_header = email_header

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        activity_logger: Optional[ActivityLogger] = getattr(
            request.app.state, "activity_logger", None
        )
        method = request.method
        path = request.url.path
        if activity_logger is None or not activity_logger.enabled or not should_record(
            method, path
        ):
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start_time) * 1000)

        action, resource, resource_id = describe_request(method, path)
        await activity_logger.log(
            {
                "user_email": request.headers.get(self.email_header) or None,
                "action": action,
                "resource": resource,
                "resource_id": resource_id,
                "details": dict(request.query_params) or None,
                "ip_address": get_client_ip(request),
                "user_agent": request.headers.get("user-agent", "unknown")[:512],
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
        return response
