from datetime import datetime, timedelta, timezone

import pytest

from app.errors import OtpError, OtpReason
from app.models.pending_verification import PendingVerification
from app.services import otp

from conftest import wrong_code

EMAIL = "a@x.com"
PAYLOAD = {"kind": "individual", "email": EMAIL, "phone": "0771234567", "hashed_password": "$2b$hash", "name": None}


def _reason(excinfo):
    return excinfo.value.reason


def test_issue_persists_hashed_code_with_expiry(db, sent_codes, settings):
    pending, delivered = otp.issue(db, EMAIL, PAYLOAD)
    assert delivered is True
    code = sent_codes[EMAIL]
    assert len(code) == settings.otp_length and code.isdigit()
    assert pending.code_hash != code
    assert pending.attempts == 0
    assert otp._as_utc(pending.expires_at) > datetime.now(timezone.utc) + timedelta(minutes=settings.otp_ttl_minutes - 1)


def test_verify_success_returns_payload_and_is_one_time(db, sent_codes):
    otp.issue(db, EMAIL, PAYLOAD)
    assert otp.verify(db, EMAIL, sent_codes[EMAIL]) == PAYLOAD
    with pytest.raises(OtpError) as excinfo:
        otp.verify(db, EMAIL, sent_codes[EMAIL])
    assert _reason(excinfo) == OtpReason.not_found


def test_verify_unknown_email(db):
    with pytest.raises(OtpError) as excinfo:
        otp.verify(db, "nobody@x.com", "123456")
    assert _reason(excinfo) == OtpReason.not_found


def test_mismatch_increments_attempts(db, sent_codes):
    otp.issue(db, EMAIL, PAYLOAD)
    with pytest.raises(OtpError) as excinfo:
        otp.verify(db, EMAIL, wrong_code(sent_codes[EMAIL]))
    assert _reason(excinfo) == OtpReason.mismatch
    db.expire_all()
    assert otp.get_pending(db, EMAIL).attempts == 1


def test_exhausted_after_too_many_wrong_codes(db, sent_codes, settings):
    otp.issue(db, EMAIL, PAYLOAD)
    code = sent_codes[EMAIL]
    for _ in range(settings.otp_max_attempts):
        with pytest.raises(OtpError) as excinfo:
            otp.verify(db, EMAIL, wrong_code(code))
        assert _reason(excinfo) == OtpReason.mismatch
    with pytest.raises(OtpError) as excinfo:
        otp.verify(db, EMAIL, wrong_code(code))
    assert _reason(excinfo) == OtpReason.exhausted
    with pytest.raises(OtpError) as excinfo:
        otp.verify(db, EMAIL, code)
    assert _reason(excinfo) == OtpReason.not_found


def test_expired_code_is_rejected_and_removed(db, sent_codes):
    pending, _ = otp.issue(db, EMAIL, PAYLOAD)
    pending.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    db.commit()
    with pytest.raises(OtpError) as excinfo:
        otp.verify(db, EMAIL, sent_codes[EMAIL])
    assert _reason(excinfo) == OtpReason.expired
    assert otp.get_pending(db, EMAIL) is None


def test_resend_replaces_code_keeps_payload_resets_attempts(db, sent_codes):
    otp.issue(db, EMAIL, PAYLOAD)
    first = sent_codes[EMAIL]
    with pytest.raises(OtpError):
        otp.verify(db, EMAIL, wrong_code(first))

    pending, _ = otp.issue(db, EMAIL)
    second = sent_codes[EMAIL]
    assert pending.attempts == 0
    assert pending.resend_count == 1
    assert pending.payload == PAYLOAD
    if first != second:
        with pytest.raises(OtpError):
            otp.verify(db, EMAIL, first)
    assert otp.verify(db, EMAIL, second) == PAYLOAD


def test_new_payload_replaces_old_and_keeps_one_record(db, sent_codes):
    otp.issue(db, EMAIL, PAYLOAD)
    changed = {**PAYLOAD, "phone": "0770000000"}
    otp.issue(db, EMAIL, changed)
    assert db.query(PendingVerification).filter(PendingVerification.email == EMAIL).count() == 1
    assert otp.verify(db, EMAIL, sent_codes[EMAIL]) == changed


def test_resend_without_pending_is_not_found(db, sent_codes):
    with pytest.raises(OtpError) as excinfo:
        otp.issue(db, EMAIL)
    assert _reason(excinfo) == OtpReason.not_found


def test_resend_after_expiry_is_not_found(db, sent_codes):
    pending, _ = otp.issue(db, EMAIL, PAYLOAD)
    pending.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    db.commit()
    with pytest.raises(OtpError) as excinfo:
        otp.issue(db, EMAIL)
    assert _reason(excinfo) == OtpReason.not_found
    assert otp.get_pending(db, EMAIL) is None


def test_delivery_failure_keeps_the_code(db, monkeypatch):
    codes = []

    def failing_send(to_email, code, name=None):
        codes.append(code)
        return False

    monkeypatch.setattr("app.services.notifications.send_registration_otp_email", failing_send)
    pending, delivered = otp.issue(db, EMAIL, PAYLOAD)
    assert delivered is False
    assert otp.get_pending(db, EMAIL) is not None
    assert otp.verify(db, EMAIL, codes[-1]) == PAYLOAD


def test_purge_expired(db, sent_codes):
    pending, _ = otp.issue(db, EMAIL, PAYLOAD)
    otp.issue(db, "b@x.com", {**PAYLOAD, "email": "b@x.com"})
    pending.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
    db.commit()
    assert otp.purge_expired(db) == 1
    assert otp.get_pending(db, EMAIL) is None
    assert otp.get_pending(db, "b@x.com") is not None
