from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from config import Settings
from dependencies import get_identity_store, get_settings
from identity_store import IdentityStore, StoreUnavailable
from utils.results import ErrorKind, Outcome


router = APIRouter(prefix="/auth", tags=["auth"])
bearer = HTTPBearer(auto_error=False)


def http_error(outcome: Outcome) -> HTTPException:
    """Map a failed outcome to the HTTP error the client sees."""
    kind = outcome.error
    detail: Dict[str, Any] = {"error": kind.value, "message": kind.message}
    detail.update(outcome.data)
    headers = None
    if kind is ErrorKind.RESEND_TOO_SOON and "retryAfter" in outcome.data:
        headers = {"Retry-After": str(outcome.data["retryAfter"])}
    return HTTPException(kind.status_code, detail=detail, headers=headers)


def create_token(settings: Settings, *, kind: str, subject: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": f"{kind}:{subject}",
        "kind": kind,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.jwt_exp_min)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def get_current_identity(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    settings: Settings = Depends(get_settings),
    store: IdentityStore = Depends(get_identity_store),
) -> Dict[str, Any]:
    if not creds or not creds.credentials:
        raise HTTPException(401, "Missing Authorization token")
    try:
        payload = jwt.decode(creds.credentials, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except JWTError:
        raise HTTPException(401, "Invalid token")
    sub = payload.get("sub") or ""
    kind, _, key = sub.partition(":")
    if not key or kind not in {"college", "guest"}:
        raise HTTPException(401, "Invalid token")

    try:
        if kind == "college":
            college = store.get_college_by_sr_no(key)
            if not college:
                raise HTTPException(401, "User not found")
            return {
                "kind": "college",
                "srNo": college.sr_no,
                "name": college.name,
                "email": college.email,
                "department": college.department,
            }
        guest = store.get_guest_by_mobile(key)
    except StoreUnavailable:
        raise http_error(Outcome.failure(ErrorKind.STORE_UNAVAILABLE))
    if not guest or not guest.verified:
        raise HTTPException(401, "User not found")
    return {"kind": "guest", "mobile": guest.mobile, "name": guest.name, "verified": guest.verified}


@router.get("/me")
def me(identity: Dict[str, Any] = Depends(get_current_identity)):
    return {"success": True, "user": identity}
