"""
Read-through response cache for the Users Service.
"""

import json
from typing import Any, Awaitable, Callable, Optional

from shared.circuit_breaker import CircuitBreaker
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .stores import CacheStore

_MISS = object()


class ResponseCache:
    """
    Read-through cache of JSON-serializable read results.

    Store failures never reach the caller: lookups degrade to a miss,
    writes and invalidations are skipped, and the error is logged. A
    circuit breaker stops contacting a failing store until its recovery
    timeout has passed.
    """

    def __init__(
        self,
        store: CacheStore,
        default_ttl: int = 3600,
        metrics: Optional[MetricsCollector] = None,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
    ):
        self.store = store
        self.default_ttl = default_ttl
        self.metrics = metrics
        self.logger = get_logger("users.cache")
        # Bumped by every invalidation; loads that overlap one are not stored
        self._generation = 0
        self.breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            name="users_cache"
        )

    async def read_through(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl: Optional[int] = None
    ) -> Any:
        """
        Return the cached value for ``key`` or load, store and return it.

        ``loader`` is only awaited on a miss. If it raises, the exception
        propagates and nothing is cached. A ``ttl`` of zero or less serves
        the loaded value without storing it, and a value whose load
        overlapped an ``invalidate`` call is returned but not stored.
        """
        cached = await self._lookup(key)
        if cached is not _MISS:
            self._count("cache_hits_total")
            self.logger.debug("Cache hit", key=key)
            return cached

        self._count("cache_misses_total")
        ttl = self.default_ttl if ttl is None else ttl
        generation = self._generation
        value = await loader()
        if ttl > 0 and generation == self._generation:
            await self._store(key, value, ttl)
        return value

    async def invalidate(self, pattern: str) -> int:
        """Delete every entry whose key matches ``pattern``; returns the count removed."""
        self._generation += 1
        try:
            keys = await self.breaker.call(self.store.keys_matching, pattern)
            if not keys:
                return 0
            removed = await self.breaker.call(self.store.delete_many, keys)
        except Exception as e:
            self._record_store_error("invalidate", e, pattern=pattern)
            return 0

        if self.metrics:
            self.metrics.increment_counter("cache_invalidations_total", removed, cache_type=self.store.cache_type)
        self.logger.info("Cleared cache for pattern", pattern=pattern, count=removed)
        return removed

    async def _lookup(self, key: str) -> Any:
        try:
            raw = await self.breaker.call(self.store.get, key)
            if raw is None:
                return _MISS
            return json.loads(raw)
        except Exception as e:
            self._record_store_error("get", e, key=key)
            return _MISS

    async def _store(self, key: str, value: Any, ttl: int):
        try:
            payload = json.dumps(value)
            await self.breaker.call(self.store.set_with_ttl, key, payload, ttl)
            self.logger.debug("Cached value", key=key, ttl=ttl)
        except Exception as e:
            self._record_store_error("set", e, key=key)

    def _count(self, metric_name: str):
        if self.metrics:
            self.metrics.increment_counter(metric_name, cache_type=self.store.cache_type)

    def _record_store_error(self, operation: str, error: Exception, **context):
        self.logger.error("Cache error", operation=operation, error=str(error), **context)
        if self.metrics:
            self.metrics.increment_counter("cache_errors_total", operation=operation)

    async def health_check(self) -> bool:
        return not self.breaker.is_open() and await self.store.health_check()
