"""
Guest OTP pipeline: issuance and verification.

A guest record carries at most one challenge (otp_hash, otp_salt,
otp_expires_at, attempts_remaining). Every decision is made on a snapshot and
written back with a compare-and-set on the record version; a lost race means
the snapshot is re-read and the decision is made again.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from config import Settings
from identity_store import GuestRecord, IdentityStore, StoreUnavailable, utc_now
from utils.brevo_sms import DeliveryChannel, DeliveryError
from utils.otp_utils import generate_otp, hash_otp, new_salt, otp_matches
from utils.phone import mask_mobile, normalize_mobile
from utils.results import ErrorKind, Outcome


logger = logging.getLogger(__name__)

# Bound on read-decide-write rounds lost to concurrent writers.
CAS_ROUNDS = 8


class ChallengeState(str, enum.Enum):
    NO_CHALLENGE = "NO_CHALLENGE"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    EXPIRED = "EXPIRED"
    LOCKED = "LOCKED"


def challenge_state(guest: GuestRecord, now: datetime) -> ChallengeState:
    if guest.otp_expires_at is None:
        return ChallengeState.VERIFIED if guest.verified else ChallengeState.NO_CHALLENGE
    if now > guest.otp_expires_at:
        return ChallengeState.EXPIRED
    if guest.otp_hash is None:
        # A lock drops the hash but keeps the expiry so the state stays visible.
        return ChallengeState.LOCKED
    if guest.attempts_remaining <= 0:
        return ChallengeState.LOCKED
    return ChallengeState.PENDING


_CLEARED = {"otp_hash": None, "otp_salt": None}


class OtpService:
    def __init__(
        self,
        store: IdentityStore,
        channel: DeliveryChannel,
        *,
        settings: Settings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.channel = channel
        self.settings = settings
        self.clock = clock or utc_now

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.settings.otp_ttl_seconds)

    @property
    def cooldown(self) -> timedelta:
        return timedelta(seconds=self.settings.otp_resend_cooldown_seconds)

    def _normalize(self, mobile: Optional[str]) -> Optional[str]:
        return normalize_mobile(mobile, default_country_code=self.settings.default_country_code)

    # Issuance

    def issue(self, mobile: Optional[str], *, name: Optional[str] = None) -> Outcome:
        """Create or replace the pending challenge for mobile and send the code."""
        normalized = self._normalize(mobile)
        if not normalized:
            return Outcome.failure(ErrorKind.INVALID_INPUT, field="mobile")
        try:
            return self._issue(normalized, (name or "").strip() or None)
        except StoreUnavailable:
            logger.warning("OTP issue for %s failed: store unavailable", mask_mobile(normalized))
            return Outcome.failure(ErrorKind.STORE_UNAVAILABLE)

    def _issue(self, mobile: str, name: Optional[str]) -> Outcome:
        for _ in range(CAS_ROUNDS):
            now = self.clock()
            current = self.store.get_guest_by_mobile(mobile)
            if current is not None and current.last_issued_at is not None:
                elapsed = now - current.last_issued_at
                if elapsed < self.cooldown:
                    retry_after = int((self.cooldown - elapsed).total_seconds()) + 1
                    logger.info("OTP resend too soon for %s", mask_mobile(mobile))
                    return Outcome.failure(ErrorKind.RESEND_TOO_SOON, retryAfter=retry_after)

            code = generate_otp(self.settings.otp_length)
            salt = new_salt()
            challenge = {
                "otp_hash": hash_otp(code, salt, self.settings.otp_secret),
                "otp_salt": salt,
                "otp_expires_at": now + self.ttl,
                "attempts_remaining": self.settings.otp_max_attempts,
                "last_issued_at": now,
                # Re-verification: a fresh challenge must be accepted again.
                "verified": False,
                "verified_at": None,
            }
            if current is None:
                written = self.store.insert_guest(mobile=mobile, created_at=now, name=name, **challenge)
                written_version = 1
            else:
                if name and not current.name:
                    challenge["name"] = name
                written = self.store.update_guest(mobile, current.version, **challenge)
                written_version = current.version + 1
            if written:
                break
        else:
            logger.warning("OTP issue for %s lost %d races", mask_mobile(mobile), CAS_ROUNDS)
            return Outcome.failure(ErrorKind.STORE_UNAVAILABLE)

        try:
            self.channel.send_code(mobile, code, ttl_minutes=max(1, self.settings.otp_ttl_seconds // 60))
        except DeliveryError as exc:
            logger.warning("OTP delivery to %s failed: %s", mask_mobile(mobile), exc)
            self._rollback_issue(mobile, written_version, current)
            return Outcome.failure(ErrorKind.DELIVERY_FAILED)

        logger.info("OTP issued for %s", mask_mobile(mobile))
        return Outcome.success(
            mobile=mobile,
            expiresIn=self.settings.otp_ttl_seconds,
            resendAfter=self.settings.otp_resend_cooldown_seconds,
        )

    def _rollback_issue(self, mobile: str, written_version: int, previous: Optional[GuestRecord]) -> None:
        # Undo only our own write; if someone wrote since, their state wins.
        try:
            if previous is None:
                # First issuance: remove the record we inserted.
                self.store.delete_guest(mobile, written_version)
            else:
                self.store.update_guest(
                    mobile,
                    written_version,
                    otp_hash=previous.otp_hash,
                    otp_salt=previous.otp_salt,
                    otp_expires_at=previous.otp_expires_at,
                    attempts_remaining=previous.attempts_remaining,
                    last_issued_at=previous.last_issued_at,
                    verified=previous.verified,
                    verified_at=previous.verified_at,
                )
        except StoreUnavailable:
            logger.warning("Could not roll back undelivered OTP for %s", mask_mobile(mobile))

    # Verification

    def verify(self, mobile: Optional[str], code: Optional[str]) -> Outcome:
        """Check code against the active challenge; one success per challenge."""
        normalized = self._normalize(mobile)
        if not normalized:
            return Outcome.failure(ErrorKind.INVALID_INPUT, field="mobile")
        code = (code or "").strip()
        if not code:
            return Outcome.failure(ErrorKind.INVALID_INPUT, field="code")
        try:
            outcome = self._verify(normalized, code)
        except StoreUnavailable:
            outcome = Outcome.failure(ErrorKind.STORE_UNAVAILABLE)
        if outcome.ok:
            logger.info("OTP verified for %s", mask_mobile(normalized))
        else:
            logger.warning("OTP verify for %s failed: %s", mask_mobile(normalized), outcome.error.value)
        return outcome

    def _verify(self, mobile: str, code: str) -> Outcome:
        for _ in range(CAS_ROUNDS):
            now = self.clock()
            guest = self.store.get_guest_by_mobile(mobile)
            if guest is None:
                return Outcome.failure(ErrorKind.NOT_FOUND)

            state = challenge_state(guest, now)
            if state in (ChallengeState.NO_CHALLENGE, ChallengeState.VERIFIED):
                return Outcome.failure(ErrorKind.NO_ACTIVE_CHALLENGE)
            if state is ChallengeState.LOCKED:
                return Outcome.failure(ErrorKind.OTP_ATTEMPTS_EXCEEDED, attemptsRemaining=0)
            if state is ChallengeState.EXPIRED:
                if self.store.update_guest(mobile, guest.version, otp_expires_at=None, **_CLEARED):
                    return Outcome.failure(ErrorKind.OTP_EXPIRED)
                continue

            if otp_matches(code, guest.otp_salt, guest.otp_hash, self.settings.otp_secret):
                consumed = self.store.update_guest(
                    mobile,
                    guest.version,
                    verified=True,
                    verified_at=now,
                    otp_expires_at=None,
                    **_CLEARED,
                )
                if consumed:
                    return Outcome.success(mobile=mobile, verified=True)
                continue

            remaining = max(0, guest.attempts_remaining - 1)
            changes = {"attempts_remaining": remaining}
            if remaining == 0:
                # Terminal lock: the secret is destroyed, the expiry marks the lock.
                changes.update(_CLEARED)
            if self.store.update_guest(mobile, guest.version, **changes):
                if remaining == 0:
                    return Outcome.failure(ErrorKind.OTP_ATTEMPTS_EXCEEDED, attemptsRemaining=0)
                return Outcome.failure(ErrorKind.OTP_MISMATCH, attemptsRemaining=remaining)

        return Outcome.failure(ErrorKind.STORE_UNAVAILABLE)
