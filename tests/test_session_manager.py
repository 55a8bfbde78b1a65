from __future__ import annotations

import json

from panelcore.core import credentials
from panelcore.core.config import SessionConfig
from panelcore.core.errors import TokenGenerationError
from panelcore.core.events import EventLogger
from panelcore.core.locks.models import LockType
from panelcore.core.roles import Role
from panelcore.core.security_events import SecurityAuditLogger
from panelcore.core.sessions.manager import SessionManager
from panelcore.core.sessions.models import SessionFailure


UA = "Mozilla/5.0 (panel test)"
IP = "192.168.1.20"


def _cookie(session) -> str:
    return f"session_id={session.session_id}"


def test_create_then_validate_refreshes_heartbeat(session_manager, clock):
    s = session_manager.create_session("alice", Role.MANAGER, IP, UA)
    assert s is not None
    assert len(s.session_id) == 64
    assert s.creation_time == 0 and s.last_heartbeat == 0

    clock.advance(5000)
    check = session_manager.validate_session(_cookie(s), IP, UA)
    assert check.ok is True
    assert check.session.username == "alice"
    assert check.session.last_heartbeat == 5000
    assert session_manager.get_session(s.session_id).last_heartbeat == 5000


def test_validate_returns_a_copy(session_manager):
    s = session_manager.create_session("alice", Role.VIEWER, IP, UA)
    check = session_manager.validate_session(_cookie(s), IP, UA)
    check.session.username = "mallory"
    assert session_manager.get_session(s.session_id).username == "alice"


def test_create_rejects_invalid_records(session_manager):
    assert session_manager.create_session("", Role.OWNER, IP, UA) is None
    assert session_manager.create_session("bob", Role.UNKNOWN, IP, UA) is None
    assert session_manager.active_count() == 0


def test_create_returns_none_when_token_generation_fails(session_manager, monkeypatch):
    def boom(*_a, **_k):
        raise TokenGenerationError(reason="no entropy")

    monkeypatch.setattr(credentials, "generate_token", boom)
    assert session_manager.create_session("alice", Role.OWNER, IP, UA) is None
    assert session_manager.active_count() == 0


def test_validate_failures(session_manager):
    assert session_manager.validate_session(None, IP, UA).reason == SessionFailure.NO_COOKIE
    assert session_manager.validate_session("theme=dark", IP, UA).reason == SessionFailure.NO_COOKIE
    assert session_manager.validate_session("session_id=deadbeef", IP, UA).reason == SessionFailure.NOT_FOUND


def test_fingerprint_mismatch_removes_session_for_everyone(session_manager, lock_manager, tmp_path):
    audit_path = tmp_path / "security.jsonl"
    session_manager.audit_logger = SecurityAuditLogger(path=str(audit_path))
    s = session_manager.create_session("alice", Role.MANAGER, IP, UA)
    assert lock_manager.acquire_lock("schedule_1", LockType.EDITING_SCHEDULE, s) is True

    bad = session_manager.validate_session(_cookie(s), IP, "curl/8.0")
    assert bad.ok is False
    assert bad.reason == SessionFailure.FINGERPRINT_MISMATCH

    # The original client is logged out too, and its locks are gone.
    assert session_manager.validate_session(_cookie(s), IP, UA).reason == SessionFailure.NOT_FOUND
    assert lock_manager.is_locked("schedule_1") is None

    rows = session_manager.audit_logger.read_all()
    assert rows[-1]["event"] == "session.fingerprint_mismatch"
    assert s.session_id not in audit_path.read_text(encoding="utf-8")


def test_lazy_expiry_on_validate(session_manager, clock):
    s = session_manager.create_session("alice", Role.VIEWER, IP, UA)
    clock.advance(900000)
    assert session_manager.validate_session(_cookie(s), IP, UA).ok is True  # exactly at the limit
    clock.advance(900001)
    check = session_manager.validate_session(_cookie(s), IP, UA)
    assert check.reason == SessionFailure.EXPIRED
    assert session_manager.active_count() == 0


def test_timeout_scenario_sweep_releases_lock(session_manager, lock_manager, clock):
    s = session_manager.create_session("alice", Role.MANAGER, IP, UA)
    assert lock_manager.acquire_lock("schedule_7", LockType.EDITING_SCHEDULE, s) is True

    clock.now = 899999
    check = session_manager.validate_session(_cookie(s), IP, UA)
    assert check.ok is True
    assert check.session.last_heartbeat == 899999

    clock.now = 1800000
    assert session_manager.cleanup_expired_sessions() == 1
    assert session_manager.get_session(s.session_id) is None
    assert lock_manager.is_locked("schedule_7") is None


def test_cleanup_is_throttled(lock_manager, clock):
    sm = SessionManager(lock_manager=lock_manager, cfg=SessionConfig(timeout_ms=1000, cleanup_interval_ms=60000), now=clock)
    sm.create_session("alice", Role.VIEWER, IP, UA)
    clock.now = 30000
    assert sm.cleanup_expired_sessions() == 0
    assert sm.active_count() == 1
    clock.now = 60000
    assert sm.cleanup_expired_sessions() == 1
    assert sm.active_count() == 0


def test_cleanup_accepts_explicit_now(session_manager):
    session_manager.create_session("alice", Role.VIEWER, IP, UA)
    assert session_manager.cleanup_expired_sessions(now=10 * 60 * 1000) == 0
    assert session_manager.cleanup_expired_sessions(now=20 * 60 * 1000) == 1


def test_logout_releases_all_locks(session_manager, lock_manager):
    s = session_manager.create_session("alice", Role.MANAGER, IP, UA)
    other = session_manager.create_session("bob", Role.MANAGER, IP, UA)
    assert lock_manager.acquire_lock("schedule_1", LockType.EDITING_SCHEDULE, s)
    assert lock_manager.acquire_lock("template_1", LockType.EDITING_TEMPLATE, s)
    assert lock_manager.acquire_lock("schedule_2", LockType.EDITING_SCHEDULE, other)

    assert session_manager.invalidate_session_from_cookie(_cookie(s)) is True
    assert session_manager.invalidate_session(s.session_id) is False
    assert lock_manager.is_locked("schedule_1") is None
    assert lock_manager.is_locked("template_1") is None
    assert lock_manager.is_locked("schedule_2").username == "bob"


def test_lifecycle_events_are_logged_without_tokens(lock_manager, clock, tmp_path):
    path = tmp_path / "events.jsonl"
    sm = SessionManager(lock_manager=lock_manager, event_logger=EventLogger(str(path)), now=clock)
    s = sm.create_session("alice", Role.OWNER, IP, UA)
    sm.invalidate_session(s.session_id)

    text = path.read_text(encoding="utf-8")
    events = [json.loads(line)["event"] for line in text.splitlines()]
    assert events == ["session.created", "session.removed"]
    assert s.session_id not in text


def test_list_sessions(session_manager):
    session_manager.create_session("alice", Role.OWNER, IP, UA)
    session_manager.create_session("bob", Role.VIEWER, IP, UA)
    assert sorted(s.username for s in session_manager.list_sessions()) == ["alice", "bob"]
