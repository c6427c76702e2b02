# app/infrastructure/cache.py
"""
Cache Adapter for the Booking Session Store
Key-value operations with TTL over the shared Redis client.
"""

import time
import logging
from collections import OrderedDict
from typing import Optional, Tuple

from app.db.redis_client import get_redis

logger = logging.getLogger(__name__)


class CacheAdapter:
    """
    Storage interface used by SessionStore.
    Values are JSON strings; every write carries a TTL.
    """

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def set(self, key: str, value: str, ttl: int) -> bool:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        raise NotImplementedError

    async def pop(self, key: str) -> Optional[str]:
        """Read and remove in one step (one-shot payment results)."""
        raise NotImplementedError


class RedisCache(CacheAdapter):
    """
    Redis-backed session storage.
    Backend errors are logged and reported as a miss (reads) or False (writes).
    """

    def __init__(self):
        self.redis = get_redis()
        logger.debug("✓ RedisCache initialized with shared Redis client")

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self.redis.get(key)
            logger.debug(f"Session {'HIT' if value else 'MISS'}: {key}")
            return value
        except Exception as e:
            logger.error(f"[RedisCache] Read failed for '{key}': {e}")
            return None

    async def set(self, key: str, value: str, ttl: int) -> bool:
        try:
            await self.redis.setex(key, ttl, value)
            return True
        except Exception as e:
            logger.error(f"[RedisCache] Write failed for '{key}' (ttl={ttl}s): {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            return await self.redis.delete(key) > 0
        except Exception as e:
            logger.error(f"[RedisCache] Delete failed for '{key}': {e}")
            return False

    async def pop(self, key: str) -> Optional[str]:
        try:
            return await self.redis.getdel(key)
        except Exception as e:
            logger.error(f"[RedisCache] Pop failed for '{key}': {e}")
            return None


class InMemoryCache(CacheAdapter):
    """
    Process-local storage for tests and SESSION_BACKEND=memory.
    Entries expire by TTL; the oldest entry is evicted past max_size.
    """

    def __init__(self, max_size: int = 1000):
        self._entries: "OrderedDict[str, Tuple[str, float]]" = OrderedDict()
        self.max_size = max_size
        logger.warning("⚠️  Using InMemoryCache - sessions are lost on restart")

    def _live(self, key: str) -> Optional[str]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= time.monotonic():
            del self._entries[key]
            return None
        return value

    async def get(self, key: str) -> Optional[str]:
        return self._live(key)

    async def set(self, key: str, value: str, ttl: int) -> bool:
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[key] = (value, time.monotonic() + ttl)
        self._entries.move_to_end(key)
        return True

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def pop(self, key: str) -> Optional[str]:
        value = self._live(key)
        self._entries.pop(key, None)
        return value
