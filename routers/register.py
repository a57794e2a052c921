from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from config import Settings
from dependencies import get_identity_service, get_otp_service, get_settings
from routers.auth import create_token, http_error
from utils.identity_service import IdentityService
from utils.otp_service import OtpService


router = APIRouter(prefix="/register", tags=["register"])


class CollegeRegisterIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sr_no: str = Field(alias="srNo", min_length=1)
    password: str = Field(min_length=1)
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    department: Optional[str] = None

    @field_validator("sr_no", mode="before")
    @classmethod
    def _sr_no_as_text(cls, v: Union[str, int]):
        # Institutions issue numeric and alphanumeric serials alike.
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


@router.post("/college", status_code=201)
def register_college(payload: CollegeRegisterIn, service: IdentityService = Depends(get_identity_service)):
    outcome = service.register_college(
        payload.sr_no,
        payload.password,
        name=payload.name,
        email=str(payload.email) if payload.email else None,
        department=payload.department,
    )
    if not outcome.ok:
        raise http_error(outcome)
    return {"success": True, "user": outcome.data}


class SendOtpIn(BaseModel):
    mobile: str = Field(min_length=1)
    name: Optional[str] = None


@router.post("/guest/send-otp")
def send_guest_otp(payload: SendOtpIn, service: OtpService = Depends(get_otp_service)):
    outcome = service.issue(payload.mobile, name=payload.name)
    if not outcome.ok:
        raise http_error(outcome)
    return {"success": True, "message": "OTP sent to your mobile.", **outcome.data}


class VerifyOtpIn(BaseModel):
    mobile: str = Field(min_length=1)
    code: str = Field(min_length=1)

    @field_validator("code", mode="before")
    @classmethod
    def _code_as_text(cls, v):
        # Clients sometimes post the code as a number; a lost leading zero simply fails to match.
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


@router.post("/guest/verify-otp")
def verify_guest_otp(
    payload: VerifyOtpIn,
    service: OtpService = Depends(get_otp_service),
    settings: Settings = Depends(get_settings),
):
    outcome = service.verify(payload.mobile, payload.code)
    if not outcome.ok:
        raise http_error(outcome)
    mobile = outcome.data["mobile"]
    return {
        "success": True,
        "verified": True,
        "mobile": mobile,
        "access_token": create_token(settings, kind="guest", subject=mobile),
        "token_type": "bearer",
    }
