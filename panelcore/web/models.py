from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from panelcore.core.locks.models import LockType


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=256)


class UserInfoResponse(BaseModel):
    username: str
    role: str


class LockRequest(BaseModel):
    resource: str = Field(min_length=1, max_length=128)
    lock_type: LockType = LockType.EDITING_SCHEDULE


class LockInfoResponse(BaseModel):
    resource: str
    locked: bool
    holder: Optional[str] = None
    lock_type: Optional[str] = None
    held_by_you: bool = False


class OkResponse(BaseModel):
    ok: bool
    message: str


class StatusResponse(BaseModel):
    sessions: int
    locks: int
