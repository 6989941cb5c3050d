"""
Shared route dependencies.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from seatbook.db.session import get_db
from seatbook.services.interfaces.lock_store import LockStore
from seatbook.services.lock_service import LockManager
from seatbook.services.strategy_factory import get_lock_store


async def get_store(db: AsyncSession = Depends(get_db)) -> LockStore:
    return get_lock_store(db)


async def get_lock_manager(
    db: AsyncSession = Depends(get_db),
    store: LockStore = Depends(get_store),
) -> LockManager:
    return LockManager(db, store)
