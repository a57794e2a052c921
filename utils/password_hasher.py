from __future__ import annotations

import bcrypt


def _bcrypt_bytes(password: str) -> bytes:
    # Multi-byte safe password truncation for bcrypt (max 72 bytes)
    safe_password = password.encode("utf-8")[:72].decode("utf-8", errors="ignore")
    return safe_password.encode("utf-8")


class CredentialHasher:
    """One-way salted password hashing; hashes are compared, never reversed."""

    def __init__(self, cost: int = 12):
        self.cost = cost

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.cost)
        return bcrypt.hashpw(_bcrypt_bytes(password), salt).decode("utf-8")

    def verify(self, password: str, credential_hash: str) -> bool:
        if not credential_hash:
            return False
        try:
            return bcrypt.checkpw(_bcrypt_bytes(password or ""), credential_hash.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash.
            return False
