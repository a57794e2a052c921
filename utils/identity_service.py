from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from config import Settings
from identity_store import IdentityStore, StoreUnavailable, utc_now
from utils.password_hasher import CredentialHasher
from utils.phone import mask_mobile, normalize_mobile
from utils.results import ErrorKind, Outcome


logger = logging.getLogger(__name__)


def _clean(v: Optional[str]) -> Optional[str]:
    return (v or "").strip() or None


class IdentityService:
    """College registration plus re-verification of existing identities."""

    def __init__(
        self,
        store: IdentityStore,
        hasher: CredentialHasher,
        *,
        settings: Settings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.hasher = hasher
        self.settings = settings
        self.clock = clock or utc_now

    def register_college(
        self,
        sr_no: Optional[str],
        password: Optional[str],
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        department: Optional[str] = None,
    ) -> Outcome:
        sr_no = (sr_no or "").strip()
        if not sr_no:
            return Outcome.failure(ErrorKind.INVALID_INPUT, field="srNo")
        if not password or not password.strip():
            return Outcome.failure(ErrorKind.INVALID_INPUT, field="password")

        try:
            if self.store.get_college_by_sr_no(sr_no) is not None:
                logger.warning("College registration for %s rejected: duplicate", sr_no)
                return Outcome.failure(ErrorKind.DUPLICATE_IDENTITY)

            created_at = self.clock()
            inserted = self.store.put_college(
                sr_no=sr_no,
                credential_hash=self.hasher.hash(password),
                created_at=created_at,
                name=_clean(name),
                email=_clean(email),
                department=_clean(department),
            )
        except StoreUnavailable:
            return Outcome.failure(ErrorKind.STORE_UNAVAILABLE)

        if not inserted:
            # Lost an insert race to a concurrent registration.
            logger.warning("College registration for %s rejected: duplicate", sr_no)
            return Outcome.failure(ErrorKind.DUPLICATE_IDENTITY)

        logger.info("College user %s registered", sr_no)
        return Outcome.success(
            srNo=sr_no,
            name=_clean(name),
            email=_clean(email),
            department=_clean(department),
            createdAt=created_at.isoformat(),
        )

    def verify_college(self, sr_no: Optional[str], password: Optional[str]) -> Outcome:
        sr_no = (sr_no or "").strip()
        if not sr_no:
            return Outcome.failure(ErrorKind.INVALID_INPUT, field="srNo")
        try:
            college = self.store.get_college_by_sr_no(sr_no)
        except StoreUnavailable:
            return Outcome.failure(ErrorKind.STORE_UNAVAILABLE)
        if college is None:
            return Outcome.failure(ErrorKind.NOT_FOUND)
        if not self.hasher.verify(password or "", college.credential_hash):
            logger.warning("College verification for %s failed: bad credential", sr_no)
            return Outcome.failure(ErrorKind.INVALID_CREDENTIAL)
        return Outcome.success(srNo=college.sr_no)

    def verify_guest(self, mobile: Optional[str]) -> Outcome:
        """Registration lookup only; no secret is checked here."""
        normalized = normalize_mobile(mobile, default_country_code=self.settings.default_country_code)
        if not normalized:
            return Outcome.failure(ErrorKind.INVALID_INPUT, field="mobile")
        try:
            guest = self.store.get_guest_by_mobile(normalized)
        except StoreUnavailable:
            return Outcome.failure(ErrorKind.STORE_UNAVAILABLE)
        if guest is None:
            logger.info("Guest lookup for %s: not registered", mask_mobile(normalized))
            return Outcome.failure(ErrorKind.NOT_FOUND)
        return Outcome.success(mobile=normalized, verified=guest.verified)
