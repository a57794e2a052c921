"""
OTP code primitives: generation and salted hashing.

Codes are drawn from ``secrets`` and only their HMAC digest is ever stored.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets


def generate_otp(length: int = 6) -> str:
    """Uniformly random numeric code; leading zeros are kept."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def new_salt() -> str:
    return secrets.token_hex(16)


def hash_otp(code: str, salt: str, secret: str) -> str:
    """HMAC-SHA256 hex digest (64 chars) of salt:code keyed by the server secret."""
    msg = f"{salt}:{code}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), msg, hashlib.sha256).hexdigest()


def otp_matches(code: str, salt: str, stored_hash: str, secret: str) -> bool:
    if not stored_hash or not salt:
        return False
    # Constant-time compare
    return hmac.compare_digest(hash_otp(code, salt, secret), stored_hash)
