from __future__ import annotations

from typing import Annotated, List

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _database_url(url: str) -> str:
    if url:
        # Render commonly provides "postgres://..."; normalize and select the psycopg (v3) driver.
        if "://" in url and "+" not in url.split("://", 1)[0]:
            if url.startswith("postgres://"):
                return url.replace("postgres://", "postgresql+psycopg://", 1)
            if url.startswith("postgresql://"):
                return url.replace("postgresql://", "postgresql+psycopg://", 1)
        return url
    # Local/dev fallback (keeps repo runnable without Postgres).
    return "sqlite:///./app.db"


class Settings(BaseSettings):
    """Runtime options, read once at startup and handed to each component.

    Each field is filled from the environment variable of the same name
    in upper case (DATABASE_URL, OTP_LENGTH, ...), then from ``.env``.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    # Database: Render sets DATABASE_URL.
    database_url: str = Field(default="sqlite:///./app.db")
    store_timeout_seconds: int = Field(default=5)

    # Guest OTP
    otp_length: int = Field(default=6)
    otp_ttl_seconds: int = Field(default=300)
    otp_max_attempts: int = Field(default=5)
    otp_resend_cooldown_seconds: int = Field(default=45)
    otp_secret: str = Field(default="change_me")

    credential_hash_cost: int = Field(default=12)
    default_country_code: str = Field(default="91")

    # Auth
    jwt_secret: str = Field(default="change_me")
    jwt_alg: str = Field(default="HS256")
    jwt_exp_min: int = Field(default=43200)  # 30 days

    # Brevo SMS
    brevo_api_key: str = Field(default="")
    brevo_sms_sender: str = Field(default="LostFound")

    guest_retention_hours: int = Field(default=72)
    cors_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")

    @field_validator("database_url")
    @classmethod
    def _normalize_database_url(cls, v: str) -> str:
        return _database_url(v.strip())

    @field_validator("otp_length")
    @classmethod
    def _check_otp_length(cls, v: int) -> int:
        if not 4 <= v <= 10:
            raise ValueError("OTP_LENGTH must be between 4 and 10")
        return v

    @field_validator("credential_hash_cost")
    @classmethod
    def _check_hash_cost(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("CREDENTIAL_HASH_COST must be between 4 and 31")
        return v

    @field_validator(
        "otp_ttl_seconds",
        "otp_max_attempts",
        "store_timeout_seconds",
        "jwt_exp_min",
        "guest_retention_hours",
    )
    @classmethod
    def _check_positive(cls, v: int, info: ValidationInfo) -> int:
        if v <= 0:
            raise ValueError(f"{info.field_name.upper()} must be positive")
        return v

    @field_validator("otp_resend_cooldown_seconds")
    @classmethod
    def _check_cooldown(cls, v: int) -> int:
        if v < 0:
            raise ValueError("OTP_RESEND_COOLDOWN_SECONDS must not be negative")
        return v

    @field_validator("default_country_code")
    @classmethod
    def _strip_plus(cls, v: str) -> str:
        return v.strip().lstrip("+")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if isinstance(v, str):
            v = [o.strip() for o in v.split(",") if o.strip()]
        return v or ["*"]

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()
