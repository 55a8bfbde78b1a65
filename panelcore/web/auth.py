from __future__ import annotations

from typing import Callable

from fastapi import Request

from panelcore.core.errors import AuthenticationError, PermissionDeniedError, SecurityViolationError
from panelcore.core.roles import Role
from panelcore.core.sessions.models import Session, SessionFailure


def client_address(request: Request) -> str:
    return getattr(getattr(request, "client", None), "host", None) or ""


def build_session_auth(session_manager, event_logger) -> Callable[..., Session]:
    def dep(request: Request) -> Session:
        trace_id = getattr(getattr(request, "state", None), "trace_id", "web")
        check = session_manager.validate_session(
            request.headers.get("cookie"),
            client_address(request),
            request.headers.get("user-agent", ""),
        )
        if not check.ok:
            reason = check.reason.value if check.reason is not None else "unknown"
            event_logger.log(trace_id, "web.auth.failed", {"reason": reason, "client_host": client_address(request), "path": str(request.url.path)})
            if check.reason == SessionFailure.EXPIRED:
                raise AuthenticationError("Session expired. Please log in again.", reason=reason)
            if check.reason == SessionFailure.FINGERPRINT_MISMATCH:
                raise SecurityViolationError(reason=reason)
            raise AuthenticationError(reason=reason)
        request.state.session = check.session
        return check.session

    return dep


def require_role(session_auth: Callable[..., Session], minimum: Role) -> Callable[..., Session]:
    def dep(request: Request) -> Session:
        session = session_auth(request)
        if session.role.insufficient_for(minimum):
            raise PermissionDeniedError(f"Requires {minimum.label} role.", username=session.username, role=session.role.label)
        return session

    return dep
