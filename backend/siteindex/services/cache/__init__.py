"""
Cache Services

Read-through caching and cache warming for index item listings.
"""

from .cache_manager import ReadThroughCache

__all__ = ["ReadThroughCache"]
