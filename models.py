from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from database import Base


class CollegeUser(Base):
    __tablename__ = "college_users"

    # Institution-issued serial number; the natural key.
    sr_no = Column(String, primary_key=True)

    # Store password hash (bcrypt). Never store plaintext.
    credential_hash = Column(String, nullable=False)

    name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    department = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False)


class GuestUser(Base):
    __tablename__ = "guest_users"

    # E.164 normalized phone number; the natural key.
    mobile = Column(String, primary_key=True)
    name = Column(String, nullable=True)

    # Active challenge. otp_hash is HMAC-SHA256 over otp_salt + code.
    otp_hash = Column(String, nullable=True)
    otp_salt = Column(String, nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    attempts_remaining = Column(Integer, default=0, nullable=False)
    last_issued_at = Column(DateTime, nullable=True)

    verified = Column(Boolean, default=False, nullable=False)
    verified_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, index=True)

    # Bumped on every write; conditional updates compare against it.
    version = Column(Integer, default=1, nullable=False)
