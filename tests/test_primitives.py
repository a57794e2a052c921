import pytest
from pydantic import ValidationError

from config import Settings
from utils.otp_utils import generate_otp, hash_otp, new_salt, otp_matches
from utils.password_hasher import CredentialHasher
from utils.phone import mask_mobile, normalize_mobile


def test_generate_otp_is_fixed_length_digits():
    for _ in range(200):
        code = generate_otp(6)
        assert len(code) == 6
        assert code.isdigit()


def test_generate_otp_keeps_leading_zeros():
    codes = {generate_otp(4) for _ in range(3000)}
    assert any(c.startswith("0") for c in codes)
    assert all(len(c) == 4 for c in codes)


def test_otp_hash_is_salted_and_verifiable():
    salt_a, salt_b = new_salt(), new_salt()
    assert salt_a != salt_b
    digest = hash_otp("123456", salt_a, "k")
    assert digest != hash_otp("123456", salt_b, "k")
    assert "123456" not in digest
    assert otp_matches("123456", salt_a, digest, "k")
    assert not otp_matches("123457", salt_a, digest, "k")
    assert not otp_matches("123456", salt_a, digest, "other-secret")
    assert not otp_matches("123456", salt_a, "", "k")


def test_credential_hasher_round_trip():
    hasher = CredentialHasher(cost=4)
    stored = hasher.hash("s3cret-pass")
    assert stored != "s3cret-pass"
    assert stored.startswith("$2")
    assert hasher.verify("s3cret-pass", stored)
    assert not hasher.verify("s3cret-pasS", stored)
    assert not hasher.verify("", stored)
    assert not hasher.verify(stored, stored)


def test_credential_hasher_uses_configured_cost():
    assert CredentialHasher(cost=5).hash("pw").startswith("$2b$05$")


def test_credential_hasher_rejects_garbage_hash():
    assert not CredentialHasher(cost=4).verify("pw", "not-a-bcrypt-hash")


def test_credential_hasher_truncates_long_passwords():
    hasher = CredentialHasher(cost=4)
    long_pw = "é" * 100
    assert hasher.verify(long_pw, hasher.hash(long_pw))


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+1 555-123-4567", "+15551234567"),
        ("+91 98765 43210", "+919876543210"),
        ("0091 9876543210", "+919876543210"),
        ("9876543210", "+919876543210"),
        ("09876543210", "+919876543210"),
        ("(987) 654-3210", "+919876543210"),
    ],
)
def test_normalize_mobile(raw, expected):
    assert normalize_mobile(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "   ", "abc", "+12", "+1234567890123456", "+0123456789", "98765x3210"])
def test_normalize_mobile_rejects_malformed(raw):
    assert normalize_mobile(raw) is None


def test_normalize_mobile_respects_country_code():
    assert normalize_mobile("5551234567", default_country_code="1") == "+15551234567"


def test_mask_mobile_hides_middle_digits():
    assert mask_mobile("+919876543210") == "+9198*****210"


def test_settings_validation():
    with pytest.raises(ValueError):
        Settings(credential_hash_cost=3)
    with pytest.raises(ValueError):
        Settings(otp_length=12)
    with pytest.raises(ValueError):
        Settings(otp_ttl_seconds=0)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("OTP_LENGTH", "8")
    monkeypatch.setenv("OTP_RESEND_COOLDOWN_SECONDS", "60")
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/lostfound")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    settings = Settings.from_env()
    assert settings.otp_length == 8
    assert settings.otp_resend_cooldown_seconds == 60
    assert settings.database_url == "postgresql+psycopg://u:p@db/lostfound"
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_settings_from_env_rejects_non_integer(monkeypatch):
    monkeypatch.setenv("OTP_TTL_SECONDS", "five minutes")
    with pytest.raises(ValueError):
        Settings.from_env()


def test_settings_fields_are_normalized():
    settings = Settings(
        database_url="postgresql://u:p@db/lostfound",
        default_country_code=" +44",
        log_level="debug",
        cors_origins="https://a.example,,",
    )
    assert settings.database_url == "postgresql+psycopg://u:p@db/lostfound"
    assert settings.default_country_code == "44"
    assert settings.log_level == "DEBUG"
    assert settings.cors_origins == ["https://a.example"]


def test_settings_are_read_only():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.otp_length = 8
