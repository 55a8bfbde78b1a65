from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from panelcore.core.events import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class PanelError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Core types ----
class ConfigError(PanelError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class InvalidInputError(PanelError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("invalid_input", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class NotFoundError(PanelError):
    def __init__(self, user_message: str = "Not found.", **ctx: Any):
        super().__init__("not_found", user_message, severity=Severity.INFO, recoverable=False, context=ctx)


class ConflictError(PanelError):
    def __init__(self, user_message: str = "Resource is busy.", **ctx: Any):
        super().__init__("conflict", user_message, severity=Severity.INFO, recoverable=True, context=ctx)


class SecurityViolationError(PanelError):
    def __init__(self, user_message: str = "Session rejected. Please log in again.", **ctx: Any):
        super().__init__("security_violation", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class StorageFailureError(PanelError):
    def __init__(self, user_message: str = "Storage error.", **ctx: Any):
        super().__init__("storage_failure", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class StorageInitError(PanelError):
    def __init__(self, user_message: str = "Storage could not be initialized.", **ctx: Any):
        super().__init__("storage_init_failed", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class TokenGenerationError(PanelError):
    def __init__(self, user_message: str = "Could not create a session.", **ctx: Any):
        super().__init__("token_generation_failed", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class AuthenticationError(PanelError):
    def __init__(self, user_message: str = "Not authenticated. Please log in again.", **ctx: Any):
        super().__init__("not_authenticated", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class PermissionDeniedError(PanelError):
    def __init__(self, user_message: str = "Permission denied.", **ctx: Any):
        super().__init__("permission_denied", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class UnavailableError(PanelError):
    def __init__(self, user_message: str = "Temporarily unavailable. Try again shortly.", **ctx: Any):
        super().__init__("unavailable", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)
