from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from panelcore.core.config import SessionConfig, WebConfig
from panelcore.core.errors import (
    AuthenticationError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    PanelError,
    StorageFailureError,
    UnavailableError,
)
from panelcore.core.events import NullEventLogger
from panelcore.core.locks.models import LockCheck, LockState
from panelcore.core.roles import Role
from panelcore.core.sessions.cookies import build_session_cookie, clear_session_cookie
from panelcore.core.sessions.models import Session
from panelcore.web.auth import build_session_auth, client_address, require_role
from panelcore.web.middleware import PanelRequestMiddleware
from panelcore.web.models import (
    LockInfoResponse,
    LockRequest,
    LoginRequest,
    OkResponse,
    StatusResponse,
    UserInfoResponse,
)


_STATUS_BY_CODE = {
    "invalid_input": 400,
    "not_authenticated": 401,
    "security_violation": 401,
    "permission_denied": 403,
    "not_found": 404,
    "conflict": 409,
    "unavailable": 503,
}


def _trace_id(request: Request) -> str:
    return getattr(getattr(request, "state", None), "trace_id", "web")


def _lock_info(resource: str, check: LockCheck, session: Session) -> LockInfoResponse:
    if not check.held or check.lock is None:
        return LockInfoResponse(resource=resource, locked=False)
    return LockInfoResponse(
        resource=resource,
        locked=True,
        holder=check.lock.username,
        lock_type=check.lock.lock_type.value,
        held_by_you=check.lock.session_id == session.session_id,
    )


def _busy(resource: str, holder: str) -> ConflictError:
    return ConflictError(f"This resource is currently being edited by {holder}.", resource=resource, holder=holder)


def create_app(
    *,
    session_manager,
    lock_manager,
    user_store,
    session_cfg: Optional[SessionConfig] = None,
    web_cfg: Optional[WebConfig] = None,
    event_logger=None,
    audit_logger=None,
    logger: Optional[logging.Logger] = None,
) -> FastAPI:
    session_cfg = session_cfg or SessionConfig()
    web_cfg = web_cfg or WebConfig()
    event_logger = event_logger or NullEventLogger()
    logger = logger or logging.getLogger(__name__)
    secure_cookie = bool(web_cfg.https_only)

    app = FastAPI(title="Panel Core", version="0.1.0")

    if web_cfg.allowed_origins:
        if any(o == "*" for o in web_cfg.allowed_origins):
            raise ValueError("Wildcard CORS origins are not allowed.")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(web_cfg.allowed_origins),
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
        )
    app.middleware("http")(PanelRequestMiddleware(https_only=web_cfg.https_only, event_logger=event_logger))

    session_auth = build_session_auth(session_manager, event_logger)
    manager_auth = require_role(session_auth, Role.MANAGER)
    owner_auth = require_role(session_auth, Role.OWNER)

    @app.exception_handler(PanelError)
    async def panel_error_handler(request: Request, exc: PanelError):
        code = _STATUS_BY_CODE.get(exc.code, 500)
        if code >= 500:
            logger.error("Request %s failed (%s): %s", request.url.path, exc.code, exc.to_dict()["context"])
        if audit_logger is not None and exc.code in {"not_authenticated", "security_violation", "permission_denied"}:
            audit_logger.access_denied(trace_id=_trace_id(request), ip=client_address(request), endpoint=str(request.url.path), code=exc.code, details=exc.to_dict()["context"])
        return JSONResponse(status_code=code, content={"detail": exc.user_message, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in e.get("loc", ())) for e in exc.errors()]
        return await panel_error_handler(request, InvalidInputError(fields=fields))

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/api/login", response_model=UserInfoResponse)
    def login(req: LoginRequest, request: Request):
        ip = client_address(request)
        account = user_store.authenticate(req.username, req.password)
        if account is None:
            if audit_logger is not None:
                audit_logger.login_failed(trace_id=_trace_id(request), ip=ip, username=req.username)
            raise AuthenticationError("Invalid username or password.")

        session = session_manager.create_session(account.username, account.role, ip, request.headers.get("user-agent", ""))
        if session is None:
            raise StorageFailureError("Could not create a session.", username=account.username)

        response = JSONResponse(content=UserInfoResponse(username=session.username, role=session.role.label).model_dump())
        response.headers["Set-Cookie"] = build_session_cookie(
            session.session_id,
            max_age_seconds=session_cfg.cookie_max_age_seconds,
            secure=secure_cookie,
        )
        return response

    @app.post("/api/logout", response_model=OkResponse)
    def logout(request: Request):
        removed = session_manager.invalidate_session_from_cookie(request.headers.get("cookie"))
        response = JSONResponse(content=OkResponse(ok=True, message="Logged out." if removed else "No active session.").model_dump())
        response.headers["Set-Cookie"] = clear_session_cookie(secure=secure_cookie)
        return response

    @app.get("/api/user", response_model=UserInfoResponse)
    def user_info(session: Session = Depends(session_auth)):
        return UserInfoResponse(username=session.username, role=session.role.label)

    @app.get("/api/lock", response_model=LockInfoResponse)
    def lock_status(resource: str = Query(min_length=1, max_length=128), session: Session = Depends(session_auth)):
        check = lock_manager.check(resource)
        if check.state == LockState.UNKNOWN:
            raise UnavailableError("Lock state is unavailable.", resource=resource)
        return _lock_info(resource, check, session)

    @app.post("/api/lock", response_model=LockInfoResponse)
    def acquire(req: LockRequest, request: Request, session: Session = Depends(manager_auth)):
        check = lock_manager.check(req.resource)
        if check.state == LockState.UNKNOWN:
            raise UnavailableError("Lock state is unavailable; editing is disabled.", resource=req.resource)
        if check.held and check.lock is not None and check.lock.session_id != session.session_id:
            raise _busy(req.resource, check.lock.username)

        if not lock_manager.acquire_lock(req.resource, req.lock_type, session):
            # Lost a race or the store write failed; report whichever applies.
            after = lock_manager.check(req.resource)
            if after.held and after.lock is not None and after.lock.session_id != session.session_id:
                raise _busy(req.resource, after.lock.username)
            raise StorageFailureError("Could not save the lock.", resource=req.resource)

        event_logger.log(_trace_id(request), "web.lock.acquired", {"resource": req.resource, "username": session.username})
        return _lock_info(req.resource, lock_manager.check(req.resource), session)

    @app.delete("/api/lock", response_model=OkResponse)
    def release(request: Request, resource: str = Query(min_length=1, max_length=128), session: Session = Depends(manager_auth)):
        if lock_manager.release_lock(resource, session.session_id):
            event_logger.log(_trace_id(request), "web.lock.released", {"resource": resource, "username": session.username})
            return OkResponse(ok=True, message="Lock released.")
        check = lock_manager.check(resource)
        if check.state == LockState.UNKNOWN:
            raise UnavailableError("Lock state is unavailable.", resource=resource)
        if check.held and check.lock is not None and check.lock.session_id != session.session_id:
            raise _busy(resource, check.lock.username)
        raise NotFoundError("You do not hold a lock on this resource.", resource=resource)

    @app.get("/api/status", response_model=StatusResponse)
    def status(session: Session = Depends(owner_auth)):
        return StatusResponse(sessions=session_manager.active_count(), locks=len(lock_manager.list_locks()))

    return app
