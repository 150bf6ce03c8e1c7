"""
Activity Log Repository

Async SQLAlchemy queries for the ``activity_logs`` table.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ActivityLog

logger = structlog.get_logger()

ENTRY_FIELDS = (
    "user_email",
    "action",
    "resource",
    "resource_id",
    "details",
    "ip_address",
    "user_agent",
    "method",
    "path",
    "status_code",
    "duration_ms",
)


@dataclass(frozen=True)
class ActivitySearch:
    """Filters for activity log searches; unset filters match everything."""

    action: Optional[str] = None
    resource: Optional[str] = None
    user_email: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = 100


class ActivityLogRepository:
    """Repository for activity log entries."""

    def __init__(self, session: AsyncSession):
        if not isinstance(session, AsyncSession):
            raise TypeError(
                f"session must be AsyncSession instance, got {type(session).__name__}"
            )
        self.session = session

    async def add(self, entry: Mapping[str, Any]) -> ActivityLog:
        """Insert an entry; the caller's session commits it."""
        log = ActivityLog(**{field: entry.get(field) for field in ENTRY_FIELDS})
        self.session.add(log)
        await self.session.flush()
        return log

    async def search(self, filters: ActivitySearch) -> List[ActivityLog]:
        """Return matching entries, newest first."""
        try:
            stmt = select(ActivityLog)
            if filters.action:
                stmt = stmt.where(ActivityLog.action == filters.action)
            if filters.resource:
                stmt = stmt.where(ActivityLog.resource == filters.resource)
            if filters.user_email:
                stmt = stmt.where(ActivityLog.user_email == filters.user_email)
            if filters.start_date:
                stmt = stmt.where(ActivityLog.timestamp >= filters.start_date)
            if filters.end_date:
                stmt = stmt.where(ActivityLog.timestamp <= filters.end_date)
            stmt = stmt.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(
                filters.limit
            )

            result = await self.session.execute(stmt)
            return list(result.scalars().all())

        except Exception as e:
            logger.error(
                "Repository: Failed to search activity log",
                action=filters.action,
                resource=filters.resource,
                error=str(e),
                exc_info=True,
            )
            raise
