from unittest import mock

import pytest

from identity_store import StoreUnavailable
from utils.results import ErrorKind


def test_register_college_persists_hashed_credential(identity_service, store):
    outcome = identity_service.register_college("2021CS001", "hunter22", name=" Aarav ", department="CS")
    assert outcome.ok
    assert outcome.data["srNo"] == "2021CS001"
    assert outcome.data["name"] == "Aarav"
    assert "password" not in outcome.data
    assert "credential_hash" not in outcome.data

    record = store.get_college_by_sr_no("2021CS001")
    assert record.credential_hash != "hunter22"
    assert record.credential_hash.startswith("$2")
    assert record.department == "CS"


def test_register_college_twice_is_duplicate_and_keeps_hash(identity_service, store):
    assert identity_service.register_college("42", "first-password").ok
    original = store.get_college_by_sr_no("42").credential_hash

    again = identity_service.register_college("42", "second-password")
    assert again.error is ErrorKind.DUPLICATE_IDENTITY
    assert store.get_college_by_sr_no("42").credential_hash == original
    assert identity_service.verify_college("42", "first-password").ok


def test_register_college_lost_insert_race_reports_duplicate(identity_service, store):
    with mock.patch.object(store, "put_college", return_value=False):
        outcome = identity_service.register_college("77", "pw")
    assert outcome.error is ErrorKind.DUPLICATE_IDENTITY


@pytest.mark.parametrize(
    "sr_no, password, field",
    [("", "pw", "srNo"), ("   ", "pw", "srNo"), (None, "pw", "srNo"), ("1", "", "password"), ("1", None, "password")],
)
def test_register_college_requires_sr_no_and_password(identity_service, sr_no, password, field):
    outcome = identity_service.register_college(sr_no, password)
    assert outcome.error is ErrorKind.INVALID_INPUT
    assert outcome.data["field"] == field


def test_verify_college(identity_service):
    identity_service.register_college("2021ME014", "correct horse")
    assert identity_service.verify_college("2021ME014", "correct horse").ok
    assert identity_service.verify_college(" 2021ME014 ", "correct horse").ok


@pytest.mark.parametrize("attempt", ["", "Correct horse", "correct horse ", "wrong"])
def test_verify_college_rejects_other_strings(identity_service, attempt):
    identity_service.register_college("9", "correct horse")
    assert identity_service.verify_college("9", attempt).error is ErrorKind.INVALID_CREDENTIAL


def test_verify_college_rejects_stored_hash_as_password(identity_service, store):
    identity_service.register_college("9", "correct horse")
    stored = store.get_college_by_sr_no("9").credential_hash
    assert identity_service.verify_college("9", stored).error is ErrorKind.INVALID_CREDENTIAL


def test_verify_college_unknown(identity_service):
    assert identity_service.verify_college("nobody", "pw").error is ErrorKind.NOT_FOUND


def test_verify_guest_lookup(identity_service, otp_service, channel):
    assert identity_service.verify_guest("+15551234567").error is ErrorKind.NOT_FOUND

    otp_service.issue("+15551234567")
    pending = identity_service.verify_guest("+1 555 123 4567")
    assert pending.ok
    assert pending.data["verified"] is False

    otp_service.verify("+15551234567", channel.last_code("+15551234567"))
    assert identity_service.verify_guest("+15551234567").data["verified"] is True


def test_verify_guest_rejects_malformed_mobile(identity_service):
    assert identity_service.verify_guest("not-a-number").error is ErrorKind.INVALID_INPUT


def test_store_outage_is_reported(identity_service, store):
    with mock.patch.object(store, "get_college_by_sr_no", side_effect=StoreUnavailable("OperationalError")):
        assert identity_service.register_college("1", "pw").error is ErrorKind.STORE_UNAVAILABLE
        assert identity_service.verify_college("1", "pw").error is ErrorKind.STORE_UNAVAILABLE
    with mock.patch.object(store, "get_guest_by_mobile", side_effect=StoreUnavailable("OperationalError")):
        assert identity_service.verify_guest("+15551234567").error is ErrorKind.STORE_UNAVAILABLE
