"""
Domain exceptions.

Raised by services and mapped to HTTP responses by handlers in ``main``.
"""


class SiteIndexError(Exception):
    """Base class for domain errors."""


class InvalidSelectorError(SiteIndexError, ValueError):
    """Raised when a cache invalidation selector names nothing to invalidate."""


class IndexItemNotFoundError(SiteIndexError, LookupError):
    """Raised when an index item id does not exist."""

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Index item {item_id} not found")
