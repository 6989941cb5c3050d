"""
Lock store factory.
Configures which lock store backend the lock manager talks to.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from seatbook.core.config import get_settings
from seatbook.infrastructure.redis_client import get_redis
from seatbook.services.interfaces.database_lock_store import DatabaseLockStore
from seatbook.services.interfaces.lock_store import LockStore
from seatbook.services.redis_lock_store import RedisLockStore

settings = get_settings()


def get_lock_store(db: AsyncSession) -> LockStore:
    """
    Get configured lock store.

    Backend selection via LOCK_BACKEND:
    - database (default): locks live next to bookings, no extra infrastructure
    - redis: native key expiry, keeps lock churn off the database

    The database session is still needed by the Redis backend's callers
    for availability reads; only lock records move.
    """
    if settings.LOCK_BACKEND == "redis":
        return RedisLockStore(get_redis())
    return DatabaseLockStore(db)
