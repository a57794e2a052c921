from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import create_store_engine, init_db, make_session_factory
from identity_store import IdentityStore
from main import create_app
from utils.brevo_sms import DeliveryError
from utils.identity_service import IdentityService
from utils.otp_service import OtpService
from utils.password_hasher import CredentialHasher


class FakeClock:
    def __init__(self, start: datetime = datetime(2024, 3, 1, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingChannel:
    def __init__(self):
        self.fail = False
        self.sent: List[Tuple[str, str]] = []

    def send_code(self, mobile: str, code: str, *, ttl_minutes: int) -> None:
        if self.fail:
            raise DeliveryError("gateway down")
        self.sent.append((mobile, code))

    def last_code(self, mobile: str) -> str:
        for sent_to, code in reversed(self.sent):
            if sent_to == mobile:
                return code
        raise KeyError(mobile)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'identity.db'}",
        store_timeout_seconds=10,
        otp_length=6,
        otp_ttl_seconds=300,
        otp_max_attempts=5,
        otp_resend_cooldown_seconds=45,
        otp_secret="test-otp-secret",
        credential_hash_cost=4,
        jwt_secret="test-jwt-secret",
    )


@pytest.fixture
def engine(settings):
    engine = create_store_engine(settings)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine) -> IdentityStore:
    return IdentityStore(make_session_factory(engine))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def otp_service(store, channel, settings, clock) -> OtpService:
    return OtpService(store, channel, settings=settings, clock=clock)


@pytest.fixture
def identity_service(store, settings, clock) -> IdentityService:
    return IdentityService(store, CredentialHasher(settings.credential_hash_cost), settings=settings, clock=clock)


@pytest.fixture
def app(settings, channel, clock):
    app = create_app(settings, channel=channel, clock=clock, run_scheduler=False)
    yield app
    app.state.engine.dispose()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
