"""
JSONL event trail for session and lock lifecycle.

Records never carry full session tokens, passwords or salts: values under sensitive keys
are replaced before the line is written, and tokens are logged via `short_token`.
"""

from __future__ import annotations

import json
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


REDACTED = "***REDACTED***"
REDACT_KEYS = frozenset(
    {
        "password",
        "passphrase",
        "secret",
        "salt",
        "token",
        "session_id",
        "sessionid",
        "cookie",
        "hashed_password",
        "hashedpassword",
        "authorization",
    }
)


def redact(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: (REDACTED if str(k).lower() in REDACT_KEYS else redact(v)) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [redact(x) for x in obj]
    return obj


def short_token(token: str) -> str:
    """Loggable prefix of a session token; never the whole value."""
    if not token:
        return ""
    return token[:8] + "..."


def utc_stamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass(frozen=True)
class JsonlFile:
    """Append-only JSON-lines file shared by request threads and the sweeper."""

    path: str
    _lock: threading.Lock = field(default_factory=threading.Lock, compare=False, repr=False)

    def append(self, record: Dict[str, Any]) -> None:
        line = json.dumps(record, ensure_ascii=False)
        with self._lock:
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def read_all(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        with self._lock:
            with open(self.path, "r", encoding="utf-8") as f:
                return [json.loads(line) for line in f if line.strip()]


@dataclass(frozen=True)
class EventLogger(JsonlFile):
    def log(self, trace_id: str, event_type: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.append({"ts": utc_stamp(), "trace_id": trace_id, "event": event_type, "details": redact(details or {})})


class NullEventLogger:
    def log(self, trace_id: str, event_type: str, details: Optional[Dict[str, Any]] = None) -> None:
        return
