from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LockType(str, Enum):
    # Informational only: any lock excludes every other lock on the same resource.
    EDITING_SCHEDULE = "editing_schedule"
    EDITING_TEMPLATE = "editing_template"


class ResourceLock(BaseModel):
    """One entry of the lock store. Field aliases are the persisted document keys."""

    model_config = ConfigDict(populate_by_name=True)

    resource_id: str = Field(default="", alias="resourceId")
    lock_type: LockType = Field(alias="lockType")
    session_id: str = Field(default="", alias="sessionId")
    username: str = ""
    timestamp: int = 0

    @field_validator("lock_type", mode="before")
    @classmethod
    def _normalize_lock_type(cls, v):  # noqa: ANN001
        if isinstance(v, str) and not isinstance(v, LockType):
            return v.strip().lower()
        return v

    def is_valid(self) -> bool:
        return bool(self.resource_id) and bool(self.session_id) and self.timestamp >= 0

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class LockState(str, Enum):
    FREE = "free"
    HELD = "held"
    UNKNOWN = "unknown"


class LockCheck(BaseModel):
    state: LockState
    lock: Optional[ResourceLock] = None

    @property
    def held(self) -> bool:
        return self.state == LockState.HELD
