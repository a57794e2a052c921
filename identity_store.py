"""
Identity Store: keyed access to college and guest identity records.

All reads hand back immutable snapshots. Writes are single statements, so each
one either applies entirely or not at all; guest updates are conditional on the
record version the caller last read.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import and_, delete, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from models import CollegeUser, GuestUser


logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Naive UTC, the convention for every timestamp in the store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StoreUnavailable(RuntimeError):
    """The store timed out or could not be reached; nothing was applied."""


@dataclass(frozen=True)
class CollegeRecord:
    sr_no: str
    credential_hash: str
    name: Optional[str]
    email: Optional[str]
    department: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class GuestRecord:
    mobile: str
    name: Optional[str]
    otp_hash: Optional[str]
    otp_salt: Optional[str]
    otp_expires_at: Optional[datetime]
    attempts_remaining: int
    last_issued_at: Optional[datetime]
    verified: bool
    verified_at: Optional[datetime]
    created_at: datetime
    version: int


def _college_record(row: CollegeUser) -> CollegeRecord:
    return CollegeRecord(
        sr_no=row.sr_no,
        credential_hash=row.credential_hash,
        name=row.name,
        email=row.email,
        department=row.department,
        created_at=row.created_at,
    )


def _guest_record(row: GuestUser) -> GuestRecord:
    return GuestRecord(
        mobile=row.mobile,
        name=row.name,
        otp_hash=row.otp_hash,
        otp_salt=row.otp_salt,
        otp_expires_at=row.otp_expires_at,
        attempts_remaining=int(row.attempts_remaining or 0),
        last_issued_at=row.last_issued_at,
        verified=bool(row.verified),
        verified_at=row.verified_at,
        created_at=row.created_at,
        version=int(row.version),
    )


class IdentityStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db: Session = self._session_factory()
        try:
            yield db
        except IntegrityError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Identity store call failed: %s", exc.__class__.__name__)
            raise StoreUnavailable(str(exc.__class__.__name__)) from exc
        finally:
            db.close()

    # College identities

    def get_college_by_sr_no(self, sr_no: str) -> Optional[CollegeRecord]:
        with self._session() as db:
            row = db.get(CollegeUser, sr_no)
            return _college_record(row) if row else None

    def put_college(
        self,
        *,
        sr_no: str,
        credential_hash: str,
        created_at: datetime,
        name: Optional[str] = None,
        email: Optional[str] = None,
        department: Optional[str] = None,
    ) -> bool:
        """Insert if absent. Returns False when the srNo is already taken."""
        try:
            with self._session() as db:
                db.add(
                    CollegeUser(
                        sr_no=sr_no,
                        credential_hash=credential_hash,
                        name=name,
                        email=email,
                        department=department,
                        created_at=created_at,
                    )
                )
                db.commit()
        except IntegrityError:
            return False
        return True

    # Guest identities

    def get_guest_by_mobile(self, mobile: str) -> Optional[GuestRecord]:
        with self._session() as db:
            row = db.get(GuestUser, mobile)
            return _guest_record(row) if row else None

    def insert_guest(self, *, mobile: str, created_at: datetime, **fields) -> bool:
        """Create a guest at version 1. Returns False if one already exists."""
        try:
            with self._session() as db:
                db.add(GuestUser(mobile=mobile, created_at=created_at, version=1, **fields))
                db.commit()
        except IntegrityError:
            return False
        return True

    def update_guest(self, mobile: str, expected_version: int, **changes) -> bool:
        """Apply changes only if the record is still at expected_version.

        Returns True if the row was updated (its version is now
        expected_version + 1), False if another writer got there first.
        """
        stmt = (
            update(GuestUser)
            .where(GuestUser.mobile == mobile, GuestUser.version == expected_version)
            .values(version=GuestUser.version + 1, **changes)
            .execution_options(synchronize_session=False)
        )
        with self._session() as db:
            result = db.execute(stmt)
            db.commit()
            return result.rowcount == 1

    def delete_guest(self, mobile: str, expected_version: int) -> bool:
        """Delete the guest only if it is still at expected_version."""
        stmt = (
            delete(GuestUser)
            .where(GuestUser.mobile == mobile, GuestUser.version == expected_version)
            .execution_options(synchronize_session=False)
        )
        with self._session() as db:
            result = db.execute(stmt)
            db.commit()
            return result.rowcount == 1

    def purge_stale_guests(self, cutoff: datetime) -> int:
        """Delete never-verified guests with no issuance since cutoff."""
        stmt = (
            delete(GuestUser)
            .where(
                GuestUser.verified.is_(False),
                or_(
                    GuestUser.last_issued_at < cutoff,
                    and_(GuestUser.last_issued_at.is_(None), GuestUser.created_at < cutoff),
                ),
            )
            .execution_options(synchronize_session=False)
        )
        with self._session() as db:
            result = db.execute(stmt)
            db.commit()
            return int(result.rowcount or 0)

