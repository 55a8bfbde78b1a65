from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from panelcore.core.roles import Role


class Session(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    session_id: str = ""
    username: str = ""
    role: Role = Role.UNKNOWN
    creation_time: int = 0
    last_heartbeat: int = 0
    fingerprint: str = ""

    def is_valid(self) -> bool:
        return bool(self.session_id) and bool(self.username) and bool(self.fingerprint) and self.role != Role.UNKNOWN


class SessionFailure(str, Enum):
    NO_COOKIE = "no_cookie"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    FINGERPRINT_MISMATCH = "fingerprint_mismatch"


class SessionCheck(BaseModel):
    """Outcome of one validation. `session` is a detached copy, safe to keep for the request."""

    session: Optional[Session] = None
    reason: Optional[SessionFailure] = None

    @property
    def ok(self) -> bool:
        return self.session is not None and self.reason is None

    @classmethod
    def failed(cls, reason: SessionFailure) -> "SessionCheck":
        return cls(session=None, reason=reason)
