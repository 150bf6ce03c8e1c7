"""
Activity log endpoints.
"""

from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..deps import get_activity_logger, require_admin_session, verify_csrf
from ...repositories.activity_log import ActivitySearch
from ...services.activity_log import ActivityLogger

logger = structlog.get_logger()
router = APIRouter(
    prefix="/admin/activity",
    tags=["activity"],
    dependencies=[Depends(require_admin_session), Depends(verify_csrf)],
)


@router.get("")
async def search_activity(
    action: Optional[str] = Query(None, max_length=100),
    resource: Optional[str] = Query(None, max_length=100),
    user_email: Optional[str] = Query(None, max_length=255),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=1000),
    activity_logger: ActivityLogger = Depends(get_activity_logger),
) -> Dict[str, Any]:
    """Search the activity log, newest entries first."""
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must not be after end_date",
        )

    activities = await activity_logger.search(
        ActivitySearch(
            action=action,
            resource=resource,
            user_email=user_email,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )
    )
    return {"activities": activities, "count": len(activities)}
