"""
Activity Log Service

Records who did what through the admin and write endpoints, and searches
those records for the admin activity view.

Writing an entry never fails the request being audited: errors are logged
and counted, then dropped.
"""

from contextlib import AbstractAsyncContextManager
from dataclasses import replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import structlog
from prometheus_client import Counter
from sqlalchemy.ext.asyncio import AsyncSession

from ..repositories.activity_log import ActivityLogRepository, ActivitySearch

logger = structlog.get_logger()

ACTIVITY_LOG_WRITES = Counter(
    "siteindex_activity_log_writes_total",
    "Activity log writes by outcome",
    ["outcome"],
)

INDEX_ITEMS_PATH = "/api/index-items"
ADMIN_PATH = "/api/admin/"

ITEM_ACTIONS = {
    "GET": "VIEW_ITEMS",
    "POST": "CREATE_ITEM",
    "PUT": "UPDATE_ITEM",
    "PATCH": "UPDATE_ITEM",
    "DELETE": "DELETE_ITEM",
}

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def describe_request(method: str, path: str) -> Tuple[str, Optional[str], Optional[str]]:
    """
    Map a request to ``(action, resource, resource_id)``.

    Index item routes use named actions, admin routes are named after their
    first path segment, and anything else is named after the whole path.
    """
    method = method.upper()
    parts = path.rstrip("/").split("/")

    if path == INDEX_ITEMS_PATH or path.startswith(INDEX_ITEMS_PATH + "/"):
        resource_id = parts[3] if len(parts) > 3 else None
        return ITEM_ACTIONS.get(method, "UNKNOWN_ACTION"), "index_items", resource_id

    if path.startswith(ADMIN_PATH) and len(parts) > 3:
        resource = parts[3].replace("-", "_")
        return f"ADMIN_{resource.upper()}_{method}", resource, None

    return f"{method}_{path.replace('/', '_').upper()}", None, None


def action_name(method: str, path: str) -> str:
    return describe_request(method, path)[0]


class ActivityLogger:
    """Writes and searches activity log entries through short-lived sessions."""

    def __init__(
        self,
        session_factory: SessionFactory,
        enabled: bool = True,
        max_results: int = 1000,
        repository_class: Callable[[Any], Any] = ActivityLogRepository,
    ):
        self.session_factory = session_factory
        self.enabled = enabled
        self.max_results = max_results
        self.repository_class = repository_class

    @classmethod
    def from_settings(cls, database, settings) -> "ActivityLogger":
        return cls(
            database.get_session,
            enabled=settings.ACTIVITY_LOG_ENABLED,
            max_results=settings.ACTIVITY_LOG_MAX_RESULTS,
        )

    async def log(self, entry: Mapping[str, Any]) -> bool:
        """Persist an entry; returns False when disabled or the write failed."""
        if not self.enabled:
            return False

        try:
            async with self.session_factory() as session:
                await self.repository_class(session).add(entry)
        except Exception as e:
            ACTIVITY_LOG_WRITES.labels(outcome="error").inc()
            logger.warning(
                "Activity logging failed",
                action=entry.get("action"),
                path=entry.get("path"),
                error=str(e),
            )
            return False

        ACTIVITY_LOG_WRITES.labels(outcome="written").inc()
        return True

    async def search(self, filters: ActivitySearch) -> List[Dict[str, Any]]:
        """Search entries newest first; returns [] when logging is disabled."""
        if not self.enabled:
            return []

        if filters.limit > self.max_results:
            filters = replace(filters, limit=self.max_results)

        async with self.session_factory() as session:
            entries = await self.repository_class(session).search(filters)
        return [entry.to_dict() for entry in entries]
