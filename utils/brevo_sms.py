from __future__ import annotations

import logging
from typing import Protocol

import requests

from config import Settings


logger = logging.getLogger(__name__)

BREVO_SMS_URL = "https://api.brevo.com/v3/transactionalSMS/sms"


class DeliveryError(RuntimeError):
    pass


class DeliveryChannel(Protocol):
    def send_code(self, mobile: str, code: str, *, ttl_minutes: int) -> None:
        ...


class BrevoSmsChannel:
    """
    Sends OTP codes using Brevo Transactional SMS API.
    Requires:
      - BREVO_API_KEY
      - BREVO_SMS_SENDER (alphanumeric sender, max 11 chars)
    """

    def __init__(self, *, api_key: str, sender: str, timeout: int = 15):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "BrevoSmsChannel":
        return cls(api_key=settings.brevo_api_key, sender=settings.brevo_sms_sender)

    def send_code(self, mobile: str, code: str, *, ttl_minutes: int) -> None:
        if not self.api_key:
            raise DeliveryError("BREVO_API_KEY is not set")

        payload = {
            "type": "transactional",
            "sender": self.sender,
            # Brevo expects the number with country code and without "+".
            "recipient": mobile.lstrip("+"),
            "content": f"Your Lost & Found verification code is {code}. It expires in {ttl_minutes} minutes.",
        }
        try:
            resp = requests.post(
                BREVO_SMS_URL,
                headers={
                    "accept": "application/json",
                    "api-key": self.api_key,
                    "content-type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DeliveryError(f"Brevo SMS request failed: {exc.__class__.__name__}") from exc
        if resp.status_code >= 300:
            # Response body may echo the content; keep it out of the error.
            raise DeliveryError(f"Brevo SMS send failed ({resp.status_code})")
        logger.info("OTP SMS accepted by Brevo")

