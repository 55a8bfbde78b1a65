from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from panelcore.core.events import JsonlFile, redact, short_token, utc_stamp


@dataclass(frozen=True)
class SecurityAuditLogger(JsonlFile):
    """Security-relevant outcomes only: failed logins, revoked sessions, denied requests."""

    path: str = os.path.join("logs", "security.jsonl")

    def log(
        self,
        *,
        trace_id: str,
        severity: str,
        event: str,
        ip: Optional[str],
        endpoint: str,
        outcome: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.append(
            {
                "ts": utc_stamp(),
                "trace_id": trace_id,
                "severity": severity,
                "event": event,
                "ip": ip,
                "endpoint": endpoint,
                "outcome": outcome,
                "details": redact(details or {}),
            }
        )

    def login_failed(self, *, trace_id: str, ip: Optional[str], username: str) -> None:
        self.log(trace_id=trace_id, severity="WARN", event="auth.login_failed", ip=ip, endpoint="/api/login", outcome="denied", details={"username": username})

    def session_revoked(self, *, ip: Optional[str], username: str, session_id: str, reason: str) -> None:
        self.log(
            trace_id="sessions",
            severity="WARN",
            event=f"session.{reason}",
            ip=ip,
            endpoint="",
            outcome="session_revoked",
            details={"username": username, "owner": short_token(session_id)},
        )

    def access_denied(self, *, trace_id: str, ip: Optional[str], endpoint: str, code: str, details: Dict[str, Any]) -> None:
        self.log(trace_id=trace_id, severity="WARN", event="web.denied", ip=ip, endpoint=endpoint, outcome=code, details=details)
