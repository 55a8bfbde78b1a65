from __future__ import annotations

from typing import Optional


SESSION_COOKIE_NAME = "session_id"
_CLEAR_EXPIRES = "Thu, 01 Jan 1970 00:00:00 GMT"


def parse_session_cookie(cookie_header: Optional[str], name: str = SESSION_COOKIE_NAME) -> str:
    """
    Extract the session token from a raw Cookie header.

    Looks for `<name>=` at a cookie boundary, takes everything up to the next `;`
    and trims whitespace. Returns "" when the key is absent.
    """
    if not cookie_header:
        return ""
    key = name + "="
    for part in cookie_header.split(";"):
        part = part.strip()
        if part.startswith(key):
            return part[len(key) :].strip()
    return ""


def build_session_cookie(token: str, *, max_age_seconds: int, secure: bool, name: str = SESSION_COOKIE_NAME) -> str:
    value = f"{name}={token}; Path=/; Max-Age={int(max_age_seconds)}; HttpOnly; SameSite=Strict"
    if secure:
        value += "; Secure"
    return value


def clear_session_cookie(*, secure: bool, name: str = SESSION_COOKIE_NAME) -> str:
    value = f"{name}=; Path=/; Max-Age=0; Expires={_CLEAR_EXPIRES}; HttpOnly; SameSite=Strict"
    if secure:
        value += "; Secure"
    return value
