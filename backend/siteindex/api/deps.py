"""
FastAPI dependencies.

Shared components are built once in the application lifespan and kept on
``app.state``; these dependencies hand them to endpoints so tests can
replace any of them through ``app.dependency_overrides``.
"""

import structlog
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, CSRFProtection
from ..core.database import get_database_session
from ..repositories.index_item import IndexItemRepository
from ..services.activity_log import ActivityLogger
from ..services.backup import BackupManager
from ..services.cache.cache_manager import ReadThroughCache
from ..services.index_items import IndexItemService
from ..services.link_checker import LinkChecker

logger = structlog.get_logger()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> ReadThroughCache:
    return request.app.state.cache


def get_csrf(request: Request) -> CSRFProtection:
    return request.app.state.csrf


def get_link_checker(request: Request) -> LinkChecker:
    return request.app.state.link_checker


def get_backup_manager(request: Request) -> BackupManager:
    return request.app.state.backup_manager


def get_activity_logger(request: Request) -> ActivityLogger:
    return request.app.state.activity_logger


async def get_repository(
    session: AsyncSession = Depends(get_database_session),
) -> IndexItemRepository:
    return IndexItemRepository(session)


async def get_index_item_service(
    repository: IndexItemRepository = Depends(get_repository),
    cache: ReadThroughCache = Depends(get_cache),
    settings: Settings = Depends(get_app_settings),
) -> IndexItemService:
    return IndexItemService(
        repository,
        cache,
        ttl_seconds=settings.CACHE_TTL_SECONDS,
        stats_ttl_seconds=settings.STATS_CACHE_TTL_SECONDS,
    )


async def require_admin_session(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> str:
    """
    Return the authenticated user's email.

    Authentication happens upstream; the proxy forwards the user's email in
    ``AUTH_EMAIL_HEADER``. A request without it is unauthenticated.
    """
    email = request.headers.get(settings.AUTH_EMAIL_HEADER, "").strip()
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )
    return email


async def verify_csrf(
    request: Request, csrf: CSRFProtection = Depends(get_csrf)
) -> None:
    """Reject state-changing requests without a valid double-submit token."""
    if not csrf.needs_protection(request.method):
        return

    submitted = request.headers.get(CSRF_HEADER_NAME)
    cookie_value = request.cookies.get(CSRF_COOKIE_NAME)
    if not csrf.validate(submitted, cookie_value):
        logger.warning(
            "CSRF validation failed",
            path=request.url.path,
            has_header=bool(submitted),
            has_cookie=bool(cookie_value),
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="CSRF validation failed"
        )
