"""
Key-value stores backing the response cache.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Callable, Dict, List, Optional, Sequence

import redis.asyncio as redis
from shared.logging import get_logger
from shared.errors import ServiceException


@dataclass
class CacheEntry:
    """Serialized payload stored under a key until ``expires_at``."""
    key: str
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheStore(ABC):
    """Minimal key-value contract used by ``ResponseCache``."""

    cache_type = "store"

    async def start(self):
        """Open connections. No-op by default."""

    async def stop(self):
        """Release connections. No-op by default."""

    async def health_check(self) -> bool:
        return True

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""

    @abstractmethod
    async def keys_matching(self, pattern: str) -> List[str]:
        """Return live keys matching a glob-style pattern."""

    @abstractmethod
    async def delete_many(self, keys: Sequence[str]) -> int:
        """Delete the given keys, returning how many existed."""


class MemoryStore(CacheStore):
    """Process-local store with lazy expiry."""

    cache_type = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl_seconds)

    async def keys_matching(self, pattern: str) -> List[str]:
        self._evict_expired()
        return [key for key in self._entries if fnmatchcase(key, pattern)]

    async def delete_many(self, keys: Sequence[str]) -> int:
        return sum(1 for key in keys if self._entries.pop(key, None) is not None)

    def _evict_expired(self):
        now = self._clock()
        for key in [key for key, entry in self._entries.items() if entry.is_expired(now)]:
            del self._entries[key]

    def __len__(self) -> int:
        self._evict_expired()
        return len(self._entries)


class RedisStore(CacheStore):
    """Redis-backed store; expiry is delegated to Redis TTLs."""

    cache_type = "redis"

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self.logger = get_logger("users.cache.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Start the Redis connection."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )

            await self.redis.ping()

            self.logger.info("Redis cache started")

        except Exception as e:
            # The response cache degrades to always-miss, so a dead Redis is not fatal
            self.logger.error("Failed to start Redis cache", error=str(e))

    async def stop(self):
        """Stop the Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.logger.info("Redis cache stopped")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise ServiceException("REDIS_NOT_STARTED", "Redis cache is not started", status_code=503)
        return self.redis

    async def get(self, key: str) -> Optional[str]:
        return await self._client().get(key)

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client().setex(key, ttl_seconds, value)

    async def keys_matching(self, pattern: str) -> List[str]:
        return list(await self._client().keys(pattern))

    async def delete_many(self, keys: Sequence[str]) -> int:
        if not keys:
            return 0
        return await self._client().delete(*keys)

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self._client().ping()
            return True
        except Exception:
            return False
