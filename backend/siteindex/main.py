"""
Site Index API - Main FastAPI Application

A-Z index service for the district's web resources:
- Public listing served through a read-through Redis cache
- Admin CRUD and bulk operations with targeted cache invalidation
- Cache inspection and warming, link checking, and file backups
- Per-client rate limiting, an admin activity log and Prometheus metrics
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .api.endpoints import api_router
from .api.endpoints.health import router as health_router
from .api.endpoints.metrics import router as metrics_router
from .constants import APP_NAME, APP_VERSION, get_current_timestamp
from .core.config import Settings, get_settings
from .core.csrf import CSRFProtection
from .core.database import DatabaseManager
from .core.logging import configure_logging
from .domain.exceptions import IndexItemNotFoundError, InvalidSelectorError
from .infrastructure.cache import create_cache_store
from .middleware.activity import ActivityLogMiddleware
from .middleware.security import SecurityHeadersMiddleware
from .services.activity_log import ActivityLogger
from .services.backup import BackupManager
from .services.cache.cache_manager import ReadThroughCache
from .services.link_checker import LinkChecker
from .services.rate_limiting import RateLimitingMiddleware, SlidingWindowRateLimiter

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build shared components on startup and release them on shutdown."""
    settings: Settings = app.state.settings
    configure_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    logger.info("Starting Site Index API", environment=settings.ENVIRONMENT)

    try:
        database = DatabaseManager(settings)
        await database.initialize()
        app.state.database = database

        store = create_cache_store(settings)
        app.state.cache = ReadThroughCache(store, namespace=settings.CACHE_NAMESPACE)

        app.state.http_client = httpx.AsyncClient()
        app.state.link_checker = LinkChecker.from_settings(
            app.state.http_client, store, settings
        )
        app.state.backup_manager = BackupManager.from_settings(settings)
        app.state.rate_limiter = SlidingWindowRateLimiter.from_settings(store, settings)
        app.state.activity_logger = ActivityLogger.from_settings(database, settings)

        logger.info(
            "Site Index API started successfully",
            version=APP_VERSION,
            cache_backend=settings.CACHE_BACKEND,
            cache_namespace=settings.CACHE_NAMESPACE,
            rate_limit_enabled=settings.RATE_LIMIT_ENABLED,
            activity_log_enabled=settings.ACTIVITY_LOG_ENABLED,
        )

    except Exception:
        logger.exception("Failed to initialize application")
        raise

    yield

    logger.info("Shutting down Site Index API")
    try:
        await app.state.http_client.aclose()
        await app.state.cache.store.close()
        await app.state.database.close()
        logger.info("Application shutdown completed")
    except Exception as e:
        logger.error("Error during application shutdown", error=str(e))


def _error_body(error: str, message: str) -> dict:
    return {
        "error": error,
        "message": message,
        "timestamp": get_current_timestamp().isoformat(),
    }


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidSelectorError)
    async def invalid_selector_handler(request: Request, exc: InvalidSelectorError):
        return JSONResponse(status_code=400, content=_error_body("Bad request", str(exc)))

    @app.exception_handler(IndexItemNotFoundError)
    async def not_found_handler(request: Request, exc: IndexItemNotFoundError):
        return JSONResponse(status_code=404, content=_error_body("Not found", str(exc)))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            "Database error",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("Database error", "A database error occurred"),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", "An unexpected error occurred"),
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the application; components needing I/O are built in the lifespan."""
    settings = settings or get_settings()

    app = FastAPI(
        title=APP_NAME,
        description="A-Z site index API with read-through caching",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.csrf = CSRFProtection(settings.SECRET_KEY)

    # Last added runs first: CORS, security headers, rate limiting, activity log
    app.add_middleware(ActivityLogMiddleware, email_header=settings.AUTH_EMAIL_HEADER)
    app.add_middleware(
        RateLimitingMiddleware,
        enabled=settings.RATE_LIMIT_ENABLED,
        skip_loopback=settings.is_development,
    )
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(api_router)
    register_exception_handlers(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(app, host=_settings.API_HOST, port=_settings.API_PORT)
