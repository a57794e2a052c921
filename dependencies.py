from __future__ import annotations

from fastapi import Request

from config import Settings
from identity_store import IdentityStore
from utils.identity_service import IdentityService
from utils.otp_service import OtpService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity_store(request: Request) -> IdentityStore:
    return request.app.state.identity_store


def get_otp_service(request: Request) -> OtpService:
    return request.app.state.otp_service


def get_identity_service(request: Request) -> IdentityService:
    return request.app.state.identity_service
