"""Pessimistic resource locks owned by sessions, persisted through LockStore."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, List, Optional

from panelcore.core.config import LockConfig
from panelcore.core.events import NullEventLogger, short_token
from panelcore.core.locks.models import LockCheck, LockState, LockType, ResourceLock
from panelcore.core.locks.store import LockStore
from panelcore.core.sessions.models import Session


def epoch_ms() -> int:
    return int(time.time() * 1000)


class LockManager:
    """
    Acquire/release protocol over the lock store.

    Every mutation is load -> transform -> save of the whole document, done under one
    RLock so overlapping calls from request threads and the sweeper cannot interleave.
    """

    def __init__(
        self,
        *,
        cfg: Optional[LockConfig] = None,
        store: Optional[LockStore] = None,
        event_logger: Any = None,
        logger: Optional[logging.Logger] = None,
        now: Optional[Callable[[], int]] = None,
    ) -> None:
        self.cfg = cfg or LockConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.store = store or LockStore(self.cfg.store_path, logger=self.logger)
        self.event_logger = event_logger or NullEventLogger()
        self._now = now or epoch_ms
        self._lock = threading.RLock()
        self._last_cleanup = self._now()

    def begin(self, *, discard_existing: bool = False) -> bool:
        """
        Prepare the backing store. Raises StorageInitError when the directory cannot be
        created; returns False when the store document cannot be written.
        """
        with self._lock:
            if not self.store.ensure():
                self.logger.error("Lock store %s could not be created.", self.store.path)
                return False
            if discard_existing:
                ok, locks, err = self.store.load_all()
                if ok and not locks:
                    return True
                if ok:
                    self.logger.info("Discarding %d lock(s) left from a previous run.", len(locks))
                else:
                    self.logger.warning("Resetting unreadable lock store %s (%s).", self.store.path, err)
                return self.store.save_all([])
            return True

    def acquire_lock(self, resource_id: str, lock_type: LockType, owner_session: Session) -> bool:
        if not resource_id or owner_session is None or not owner_session.is_valid():
            self.logger.warning("acquire_lock rejected: invalid resource id or session.")
            return False
        try:
            lock_type = LockType(lock_type)
        except ValueError:
            self.logger.warning("acquire_lock rejected: unknown lock type %r.", lock_type)
            return False

        with self._lock:
            ok, locks, err = self.store.load_all()
            if not ok:
                self.logger.error("acquire_lock(%s): lock store unreadable (%s).", resource_id, err)
                return False

            for existing in locks:
                if existing.resource_id != resource_id:
                    continue
                if existing.session_id != owner_session.session_id:
                    self.logger.info("Resource '%s' is busy (held by %s).", resource_id, existing.username)
                    return False
                # Same owner: renewal. Replace the entry so the timestamp is refreshed.
                locks = [l for l in locks if not (l.resource_id == resource_id and l.session_id == owner_session.session_id)]
                break

            new_lock = ResourceLock(
                resource_id=resource_id,
                lock_type=lock_type,
                session_id=owner_session.session_id,
                username=owner_session.username,
                timestamp=self._now(),
            )
            if not new_lock.is_valid():
                self.logger.error("acquire_lock(%s): constructed lock is invalid.", resource_id)
                return False
            locks.append(new_lock)

            if not self.store.save_all(locks):
                return False
            self.event_logger.log(
                "locks",
                "lock.acquired",
                {"resource": resource_id, "lock_type": new_lock.lock_type.value, "owner": short_token(owner_session.session_id), "username": owner_session.username},
            )
            return True

    def release_lock(self, resource_id: str, session_id: str) -> bool:
        """Release one lock. False covers both "no such lock" and "held by someone else"."""
        if not resource_id or not session_id:
            return False
        with self._lock:
            ok, locks, err = self.store.load_all()
            if not ok:
                self.logger.error("release_lock(%s): lock store unreadable (%s).", resource_id, err)
                return False
            remaining = [l for l in locks if not (l.resource_id == resource_id and l.session_id == session_id)]
            if len(remaining) == len(locks):
                return False
            if not self.store.save_all(remaining):
                return False
            self.event_logger.log("locks", "lock.released", {"resource": resource_id, "owner": short_token(session_id)})
            return True

    def release_locks_for_session(self, session_id: str) -> int:
        """
        Drop every lock owned by `session_id`.

        The count reflects the working copy: if the save fails the locks may still be on
        disk, and the failure is only logged.
        """
        if not session_id:
            return 0
        with self._lock:
            ok, locks, err = self.store.load_all()
            if not ok:
                self.logger.error("release_locks_for_session: lock store unreadable (%s).", err)
                return 0
            remaining = [l for l in locks if l.session_id != session_id]
            released = len(locks) - len(remaining)
            if released > 0:
                if self.store.save_all(remaining):
                    self.event_logger.log("locks", "lock.released_for_session", {"owner": short_token(session_id), "count": released})
                else:
                    self.logger.error("Released %d lock(s) for session %s in memory but the store write failed.", released, short_token(session_id))
            return released

    def is_locked(self, resource_id: str) -> Optional[ResourceLock]:
        """Current lock on `resource_id`, or None. An unreadable store reads as unlocked."""
        check = self.check(resource_id)
        return check.lock if check.held else None

    def get_lock_info(self, resource_id: str) -> Optional[ResourceLock]:
        return self.is_locked(resource_id)

    def check(self, resource_id: str) -> LockCheck:
        with self._lock:
            ok, locks, err = self.store.load_all()
        if not ok:
            self.logger.warning("Lock state for '%s' unknown: %s", resource_id, err)
            return LockCheck(state=LockState.UNKNOWN)
        for lock in locks:
            if lock.resource_id == resource_id:
                return LockCheck(state=LockState.HELD, lock=lock)
        return LockCheck(state=LockState.FREE)

    def list_locks(self) -> List[ResourceLock]:
        with self._lock:
            ok, locks, _err = self.store.load_all()
        return locks if ok else []

    def cleanup_expired_locks(self, now: Optional[int] = None) -> int:
        timeout = int(self.cfg.timeout_ms)
        if timeout <= 0:
            return 0
        current = self._now() if now is None else int(now)
        with self._lock:
            if current - self._last_cleanup < int(self.cfg.cleanup_interval_ms):
                return 0
            # The throttle advances even on failure so a broken store is not retried every tick.
            self._last_cleanup = current

            ok, locks, err = self.store.load_all()
            if not ok:
                self.logger.error("Lock cleanup skipped: lock store unreadable (%s).", err)
                return 0
            expired = [l for l in locks if current - l.timestamp > timeout]
            if not expired:
                return 0
            remaining = [l for l in locks if current - l.timestamp <= timeout]
            for lock in expired:
                self.logger.info("Lock on '%s' held by %s expired.", lock.resource_id, lock.username)
            if not self.store.save_all(remaining):
                self.logger.error("Failed to persist removal of %d expired lock(s).", len(expired))
                return 0
            self.event_logger.log("locks", "lock.expired", {"resources": [l.resource_id for l in expired]})
            return len(expired)
