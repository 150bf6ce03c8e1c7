"""
Health check endpoints.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ...constants import APP_VERSION, get_current_timestamp
from ...infrastructure.cache.exceptions import CacheStoreException

logger = structlog.get_logger()
router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(request: Request) -> Dict[str, Any]:
    """Liveness check for load balancers."""
    return {
        "status": "healthy",
        "timestamp": get_current_timestamp().isoformat(),
        "version": APP_VERSION,
        "environment": request.app.state.settings.ENVIRONMENT,
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """
    Readiness check.

    The database is required. The cache store is reported but does not make
    the service unready, since reads fall back to the database.
    """
    checks: Dict[str, Any] = {}

    database = getattr(request.app.state, "database", None)
    checks["database"] = (
        await database.health_check() if database else {"status": "not_initialized"}
    )

    cache = getattr(request.app.state, "cache", None)
    try:
        cache_ok = bool(cache) and await cache.store.ping()
        checks["cache"] = {"status": "healthy" if cache_ok else "unavailable"}
    except CacheStoreException as e:
        logger.warning("Cache readiness check failed", error=str(e))
        checks["cache"] = {"status": "unavailable", "error": e.message}

    ready = checks["database"].get("status") == "healthy"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not_ready",
            "timestamp": get_current_timestamp().isoformat(),
            "checks": checks,
        },
    )
