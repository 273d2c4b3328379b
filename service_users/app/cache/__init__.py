"""
Cache package for the Users Service.

``ResponseCache`` provides read-through caching of read endpoints with
TTL expiry and glob-pattern invalidation, on top of a ``CacheStore``
(Redis in deployments, an in-process store for local runs and tests).
"""

from .response_cache import ResponseCache
from .stores import CacheEntry, CacheStore, MemoryStore, RedisStore

__all__ = ["ResponseCache", "CacheEntry", "CacheStore", "MemoryStore", "RedisStore"]
