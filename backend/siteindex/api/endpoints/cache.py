"""
Cache administration endpoints: inspection, invalidation and warming.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Query

from ..deps import (
    get_app_settings,
    get_cache,
    get_index_item_service,
    require_admin_session,
    verify_csrf,
)
from ..schemas import CacheInvalidationRequest, CacheInvalidationResponse
from ...core.config import Settings
from ...infrastructure.cache.exceptions import CacheStoreException, CacheStoreHTTPException
from ...services.cache.cache_manager import DEFAULT_INSPECT_LIMIT, ReadThroughCache
from ...services.cache.warmer import CacheWarmer
from ...services.index_items import IndexItemService

logger = structlog.get_logger()
router = APIRouter(
    prefix="/admin/cache",
    tags=["cache"],
    dependencies=[Depends(require_admin_session), Depends(verify_csrf)],
)


@router.get("")
async def inspect_cache(
    limit: int = Query(DEFAULT_INSPECT_LIMIT, ge=1, le=500),
    cache: ReadThroughCache = Depends(get_cache),
) -> Dict[str, Any]:
    try:
        return {
            "stats": await cache.stats(),
            "entries": await cache.inspect(limit=limit),
        }
    except CacheStoreException as e:
        logger.error("Cache inspection failed", error=str(e))
        raise CacheStoreHTTPException(e)


@router.post("/invalidate", response_model=CacheInvalidationResponse)
async def invalidate_cache(
    payload: CacheInvalidationRequest,
    cache: ReadThroughCache = Depends(get_cache),
    user_email: str = Depends(require_admin_session),
):
    result = await cache.invalidate(payload.model_dump(exclude_none=True))
    logger.info(
        "Cache invalidated via API",
        mode=result.mode,
        invalidated_count=result.invalidated_count,
        user=user_email,
    )
    return CacheInvalidationResponse(
        invalidated_count=result.invalidated_count, mode=result.mode
    )


@router.post("/warm")
async def warm_cache(
    service: IndexItemService = Depends(get_index_item_service),
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    warmer = CacheWarmer(
        service,
        letters=settings.warm_letters_list,
        search_terms=settings.warm_search_terms_list,
    )
    report = await warmer.warm()
    return {
        "success": report.failed == 0,
        "warmed": report.warmed,
        "failed": report.failed,
        "failures": report.failures,
        "duration_seconds": report.duration_seconds,
    }
