"""API routers."""

from fastapi import APIRouter

from . import activity, admin, backups, cache, csrf, health, index_items, link_check, metrics

api_router = APIRouter(prefix="/api")
api_router.include_router(index_items.router)
api_router.include_router(admin.router)
api_router.include_router(cache.router)
api_router.include_router(link_check.router)
api_router.include_router(backups.router)
api_router.include_router(activity.router)
api_router.include_router(csrf.router)

__all__ = ["api_router", "health", "metrics"]
