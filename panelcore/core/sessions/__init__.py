"""Session issuance and validation, bound to a client fingerprint."""

from panelcore.core.sessions.cookies import (
    SESSION_COOKIE_NAME,
    build_session_cookie,
    clear_session_cookie,
    parse_session_cookie,
)
from panelcore.core.sessions.manager import SessionManager
from panelcore.core.sessions.models import Session, SessionCheck, SessionFailure

__all__ = [
    "SESSION_COOKIE_NAME",
    "Session",
    "SessionCheck",
    "SessionFailure",
    "SessionManager",
    "build_session_cookie",
    "clear_session_cookie",
    "parse_session_cookie",
]
