"""
Service interfaces for dependency inversion.
Allows swapping the lock store without changing the lock manager.
"""

from .lock_store import LockRecord, LockStore

__all__ = ['LockRecord', 'LockStore']
