"""
Redis client for the Redis lock backend.
Separated from business logic for clean architecture.
"""

from typing import Optional

import redis.asyncio as redis

from seatbook.core.config import get_settings
from seatbook.core.exceptions import StoreUnavailable
from seatbook.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """Get or create the shared client. Connections are opened lazily by the pool."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        raise StoreUnavailable("lock store")

    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
    return _redis_client


async def ping_redis() -> bool:
    if not settings.REDIS_ENABLED:
        return False
    try:
        await get_redis().ping()
        logger.info("redis_connected", url=settings.REDIS_URL)
        return True
    except Exception as e:
        logger.error("redis_connection_failed", error=str(e))
        return False


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
