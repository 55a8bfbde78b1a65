"""
Credential helpers: session tokens, salted secret hashes and client fingerprints.

All values cross module boundaries as lowercase hex strings. Nothing here keeps state.
"""

from __future__ import annotations

import hashlib
import secrets
import string

from panelcore.core.errors import TokenGenerationError


TOKEN_BYTES = 32
SALT_BYTES = 16


def generate_token(nbytes: int = TOKEN_BYTES) -> str:
    """Return `nbytes` of CSPRNG output, hex-encoded (2 * nbytes characters)."""
    if nbytes <= 0:
        raise ValueError("nbytes must be positive.")
    try:
        return secrets.token_hex(nbytes)
    except (OSError, NotImplementedError) as e:
        raise TokenGenerationError(reason=str(e)) from e


def generate_salt(nbytes: int = SALT_BYTES) -> str:
    return generate_token(nbytes)


def _salt_bytes(salt_hex: str) -> bytes:
    if not salt_hex or len(salt_hex) % 2 != 0:
        return b""
    # bytes.fromhex skips whitespace; only bare hex digits are a salt.
    if not all(c in string.hexdigits for c in salt_hex):
        return b""
    try:
        return bytes.fromhex(salt_hex)
    except ValueError:
        return b""


def hash_with_salt(secret: str, salt_hex: str) -> str:
    """
    SHA-256 over salt bytes followed by the UTF-8 secret, hex-encoded.

    Returns "" when the salt is empty, of odd length, or not hex.
    """
    salt = _salt_bytes(salt_hex)
    if not salt:
        return ""
    h = hashlib.sha256()
    h.update(salt)
    h.update(secret.encode("utf-8"))
    return h.hexdigest()


def verify_secret(secret: str, stored_hash_hex: str, salt_hex: str) -> bool:
    calculated = hash_with_salt(secret, salt_hex)
    if not calculated or not stored_hash_hex:
        return False
    return constant_time_equals(calculated, stored_hash_hex)


def constant_time_equals(a: str, b: str) -> bool:
    return secrets.compare_digest((a or "").encode("utf-8"), (b or "").encode("utf-8"))


def fingerprint(client_address: str, user_agent: str) -> str:
    combined = f"{client_address or ''}{user_agent or ''}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()
