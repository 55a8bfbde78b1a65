from __future__ import annotations

import uuid
from typing import Dict

from fastapi import Request


SECURITY_HEADERS: Dict[str, str] = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'; script-src 'self'; style-src 'self'; img-src 'self'; object-src 'none'; frame-ancestors 'none';",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "microphone=(), geolocation=()",
}


class PanelRequestMiddleware:
    """
    Per-request plumbing:
    1) trace_id on request.state (echoed as X-Trace-Id)
    2) hardening headers when the panel is served over HTTPS only
    """

    def __init__(self, *, https_only: bool, event_logger):
        self.https_only = bool(https_only)
        self.event_logger = event_logger

    async def __call__(self, request: Request, call_next):  # noqa: ANN001
        trace_id = uuid.uuid4().hex
        request.state.trace_id = trace_id
        self.event_logger.log(trace_id, "web.request", {"path": request.url.path, "method": request.method, "client_host": getattr(getattr(request, "client", None), "host", None)})
        response = await call_next(request)
        response.headers["X-Trace-Id"] = trace_id
        if self.https_only:
            for name, value in SECURITY_HEADERS.items():
                response.headers[name] = value
        return response
