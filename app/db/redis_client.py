# app/db/redis_client.py
"""
🔴 Redis Connection Management
================================

Singleton Redis client with connection pooling.
Backs the per-session booking state store.
"""

import logging
from typing import Optional
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.core.config import settings

logger = logging.getLogger(__name__)

# Global Redis client instance
_redis_client: Optional[redis.Redis] = None
_redis_pool: Optional[ConnectionPool] = None


def _create_pool() -> ConnectionPool:
    return ConnectionPool.from_url(
        settings.get_redis_url,
        encoding="utf-8",
        decode_responses=True,  # Session state is stored as JSON strings
        max_connections=50,
        socket_connect_timeout=5,
        socket_keepalive=True,
        health_check_interval=30
    )


def get_redis() -> redis.Redis:
    """
    Get Redis client instance (SYNC function).

    Client initialization is synchronous; operations (get, set, ...)
    are async and must be awaited. The connection is established lazily
    on first operation.
    """
    global _redis_client, _redis_pool

    if _redis_client is None:
        try:
            _redis_pool = _create_pool()
            _redis_client = redis.Redis(connection_pool=_redis_pool)
            logger.info("Redis client initialized (lazy connection)")

        except Exception as e:
            logger.error(f"Failed to initialize Redis client: {e}")
            raise

    return _redis_client


async def close_redis():
    """
    Close Redis connection pool.

    Call this during app shutdown.
    """
    global _redis_client, _redis_pool

    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("✅ Redis connection closed")

    if _redis_pool:
        await _redis_pool.disconnect()
        _redis_pool = None
        logger.info("✅ Redis connection pool closed")


async def health_check() -> bool:
    """
    Check if Redis is healthy.

    Returns True if Redis is accessible, False otherwise.
    """
    try:
        client = get_redis()
        await client.ping()
        return True
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return False
