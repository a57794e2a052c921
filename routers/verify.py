from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import Settings
from dependencies import get_identity_service, get_settings
from routers.auth import create_token, http_error
from utils.identity_service import IdentityService


router = APIRouter(prefix="/verify", tags=["verify"])


class CollegeVerifyIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sr_no: str = Field(alias="srNo", min_length=1)
    # Empty is a valid (wrong) credential, not malformed input.
    password: str

    @field_validator("sr_no", mode="before")
    @classmethod
    def _sr_no_as_text(cls, v: Union[str, int]):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


@router.post("/college")
def verify_college(
    payload: CollegeVerifyIn,
    service: IdentityService = Depends(get_identity_service),
    settings: Settings = Depends(get_settings),
):
    """Re-authenticate an existing college user."""
    outcome = service.verify_college(payload.sr_no, payload.password)
    if not outcome.ok:
        raise http_error(outcome)
    return {
        "success": True,
        "srNo": outcome.data["srNo"],
        "access_token": create_token(settings, kind="college", subject=outcome.data["srNo"]),
        "token_type": "bearer",
    }


class GuestVerifyIn(BaseModel):
    mobile: str = Field(min_length=1)


@router.post("/guest")
def verify_guest(payload: GuestVerifyIn, service: IdentityService = Depends(get_identity_service)):
    """Confirms a guest is registered and reports whether the number is verified."""
    outcome = service.verify_guest(payload.mobile)
    if not outcome.ok:
        raise http_error(outcome)
    return {"success": True, "verified": outcome.data["verified"]}
