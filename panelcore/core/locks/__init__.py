"""Resource locks owned by sessions and persisted as one JSON document."""

from panelcore.core.locks.manager import LockManager
from panelcore.core.locks.models import LockCheck, LockState, LockType, ResourceLock
from panelcore.core.locks.store import LockStore

__all__ = [
    "LockCheck",
    "LockManager",
    "LockState",
    "LockStore",
    "LockType",
    "ResourceLock",
]
