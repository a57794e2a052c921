from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    DUPLICATE_IDENTITY = "DUPLICATE_IDENTITY"
    NOT_FOUND = "NOT_FOUND"
    NO_ACTIVE_CHALLENGE = "NO_ACTIVE_CHALLENGE"
    OTP_EXPIRED = "OTP_EXPIRED"
    OTP_MISMATCH = "OTP_MISMATCH"
    OTP_ATTEMPTS_EXCEEDED = "OTP_ATTEMPTS_EXCEEDED"
    RESEND_TOO_SOON = "RESEND_TOO_SOON"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"

    @property
    def status_code(self) -> int:
        return _STATUS[self]

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_STATUS = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.DUPLICATE_IDENTITY: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NO_ACTIVE_CHALLENGE: 409,
    ErrorKind.OTP_EXPIRED: 410,
    ErrorKind.OTP_MISMATCH: 401,
    ErrorKind.OTP_ATTEMPTS_EXCEEDED: 429,
    ErrorKind.RESEND_TOO_SOON: 429,
    ErrorKind.INVALID_CREDENTIAL: 401,
    ErrorKind.DELIVERY_FAILED: 502,
    ErrorKind.STORE_UNAVAILABLE: 503,
}

_MESSAGES = {
    ErrorKind.INVALID_INPUT: "Missing or malformed fields.",
    ErrorKind.DUPLICATE_IDENTITY: "entry already available",
    ErrorKind.NOT_FOUND: "Account not found.",
    ErrorKind.NO_ACTIVE_CHALLENGE: "No OTP pending for this number. Request a new one.",
    ErrorKind.OTP_EXPIRED: "OTP expired. Request a new one.",
    ErrorKind.OTP_MISMATCH: "Incorrect OTP.",
    ErrorKind.OTP_ATTEMPTS_EXCEEDED: "Too many incorrect attempts. Request a new OTP.",
    ErrorKind.RESEND_TOO_SOON: "Please wait before requesting another OTP.",
    ErrorKind.INVALID_CREDENTIAL: "Incorrect password.",
    ErrorKind.DELIVERY_FAILED: "Could not deliver the OTP. Try again shortly.",
    ErrorKind.STORE_UNAVAILABLE: "Service temporarily unavailable. Try again shortly.",
}


@dataclass(frozen=True)
class Outcome:
    """Result of a core operation: either ok with data, or an error kind.

    ``data`` never carries passwords, codes or hashes.
    """

    error: Optional[ErrorKind] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, **data: Any) -> "Outcome":
        return cls(error=None, data=data)

    @classmethod
    def failure(cls, kind: ErrorKind, **data: Any) -> "Outcome":
        return cls(error=kind, data=data)
