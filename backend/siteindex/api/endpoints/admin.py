"""
Admin endpoints: bulk operations and dashboard statistics.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from ..deps import get_index_item_service, require_admin_session, verify_csrf
from ..schemas import BulkOperation, BulkOperationResult, DashboardStats
from ...constants import get_current_timestamp
from ...services.index_items import IndexItemService

logger = structlog.get_logger()
router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin_session), Depends(verify_csrf)],
)


@router.post("/bulk", response_model=BulkOperationResult)
async def bulk_operation(
    payload: BulkOperation,
    service: IndexItemService = Depends(get_index_item_service),
    user_email: str = Depends(require_admin_session),
):
    start_time = time.time()

    if payload.operation == "delete":
        result = await service.bulk_delete(payload.items)
    else:
        result = await service.bulk_update(payload.items, payload.update_data.changes())

    duration_ms = int((time.time() - start_time) * 1000)
    logger.info(
        "Bulk operation completed",
        operation=result.operation,
        count=result.count,
        duration_ms=duration_ms,
        user=user_email,
    )
    return BulkOperationResult(
        operation=result.operation,
        count=result.count,
        invalidated_count=result.invalidated_count,
        duration_ms=duration_ms,
        timestamp=get_current_timestamp(),
    )


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(service: IndexItemService = Depends(get_index_item_service)):
    return await service.dashboard_stats()
