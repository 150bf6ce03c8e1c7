"""Data access repositories."""

from .activity_log import ActivityLogRepository, ActivitySearch
from .index_item import IndexItemRepository

__all__ = ["ActivityLogRepository", "ActivitySearch", "IndexItemRepository"]
