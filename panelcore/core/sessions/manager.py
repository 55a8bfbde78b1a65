"""
In-memory session table with fingerprint binding and sliding expiry.

Every path that drops a session goes through `_remove_session`, which first asks the
lock manager to release the session's locks and only then deletes the table entry.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from panelcore.core import credentials
from panelcore.core.config import SessionConfig
from panelcore.core.errors import TokenGenerationError
from panelcore.core.events import NullEventLogger, short_token
from panelcore.core.roles import Role
from panelcore.core.sessions.cookies import parse_session_cookie
from panelcore.core.sessions.models import Session, SessionCheck, SessionFailure


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class SessionManager:
    def __init__(
        self,
        *,
        lock_manager: Any,
        cfg: Optional[SessionConfig] = None,
        event_logger: Any = None,
        audit_logger: Any = None,
        logger: Optional[logging.Logger] = None,
        now: Optional[Callable[[], int]] = None,
    ) -> None:
        self.lock_manager = lock_manager
        self.cfg = cfg or SessionConfig()
        self.event_logger = event_logger or NullEventLogger()
        self.audit_logger = audit_logger
        self.logger = logger or logging.getLogger(__name__)
        self._now = now or monotonic_ms
        self._lock = threading.RLock()
        self._sessions: Dict[str, Session] = {}
        self._last_cleanup = self._now()

    # ---- issuance ----
    def create_session(self, username: str, role: Role, client_address: str, user_agent: str) -> Optional[Session]:
        try:
            token = credentials.generate_token()
        except TokenGenerationError as e:
            self.logger.error("Session token generation failed: %s", e.context.get("reason"))
            return None
        if not token:
            return None

        now = self._now()
        session = Session(
            session_id=token,
            username=username or "",
            role=Role.coerce(role),
            creation_time=now,
            last_heartbeat=now,
            fingerprint=credentials.fingerprint(client_address, user_agent),
        )
        if not session.is_valid():
            self.logger.warning("Refusing to create invalid session for user '%s'.", username)
            return None

        with self._lock:
            self._sessions[token] = session
        self.logger.info("Session created for %s (%s).", session.username, session.role.label)
        self.event_logger.log("sessions", "session.created", {"owner": short_token(token), "username": session.username, "role": session.role.label})
        return session.model_copy()

    # ---- validation ----
    def validate_session(self, cookie_header: Optional[str], client_address: str, user_agent: str) -> SessionCheck:
        token = parse_session_cookie(cookie_header)
        if not token:
            return SessionCheck.failed(SessionFailure.NO_COOKIE)

        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return SessionCheck.failed(SessionFailure.NOT_FOUND)

            now = self._now()
            if now - session.last_heartbeat > int(self.cfg.timeout_ms):
                self.logger.info("Session for %s expired.", session.username)
                self._remove_session(token, reason="expired")
                return SessionCheck.failed(SessionFailure.EXPIRED)

            current = credentials.fingerprint(client_address, user_agent)
            if not credentials.constant_time_equals(session.fingerprint, current):
                self.logger.warning("Fingerprint mismatch for %s's session; invalidating.", session.username)
                self._audit_mismatch(session, client_address)
                self._remove_session(token, reason="fingerprint_mismatch")
                return SessionCheck.failed(SessionFailure.FINGERPRINT_MISMATCH)

            session.last_heartbeat = now
            return SessionCheck(session=session.model_copy())

    def get_session(self, token: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.get(token)
            return session.model_copy() if session is not None else None

    # ---- removal ----
    def invalidate_session(self, token: str) -> bool:
        if not token:
            return False
        with self._lock:
            if token not in self._sessions:
                return False
            self._remove_session(token, reason="logout")
            return True

    def invalidate_session_from_cookie(self, cookie_header: Optional[str]) -> bool:
        return self.invalidate_session(parse_session_cookie(cookie_header))

    def cleanup_expired_sessions(self, now: Optional[int] = None) -> int:
        current = self._now() if now is None else int(now)
        with self._lock:
            if current - self._last_cleanup < int(self.cfg.cleanup_interval_ms):
                return 0
            self._last_cleanup = current

            timeout = int(self.cfg.timeout_ms)
            expired = [sid for sid, s in self._sessions.items() if current - s.last_heartbeat > timeout]
            for sid in expired:
                self._remove_session(sid, reason="expired")
        if expired:
            self.logger.info("Session sweep removed %d expired session(s).", len(expired))
        return len(expired)

    def _remove_session(self, token: str, *, reason: str) -> None:
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return
            released = self.lock_manager.release_locks_for_session(token)
            if released > 0:
                self.logger.info("Released %d lock(s) held by %s.", released, session.username)
            del self._sessions[token]
        self.event_logger.log(
            "sessions",
            "session.removed",
            {"owner": short_token(token), "username": session.username, "reason": reason, "locks_released": released},
        )

    def _audit_mismatch(self, session: Session, client_address: str) -> None:
        if self.audit_logger is None:
            return
        self.audit_logger.session_revoked(ip=client_address, username=session.username, session_id=session.session_id, reason="fingerprint_mismatch")

    # ---- introspection ----
    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def list_sessions(self) -> List[Session]:
        with self._lock:
            return [s.model_copy() for s in self._sessions.values()]
