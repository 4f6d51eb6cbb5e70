"""One-time password gateway for registration.

Per email: NoOtp -> Issued -> (Verified | Expired | Exhausted). State lives only
in pending_verifications, so any server instance can serve the next request.
The code is committed before delivery is attempted; a failed delivery never
loses it (the user can ask for a resend).

check_code() is shared with the password reset flow, which keeps its codes in
password_resets under the same expiry and attempt rules.
"""
import hashlib
import hmac
import logging
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import OtpError, OtpReason, StorageConflict
from app.models.password_reset import PasswordReset
from app.models.pending_verification import PendingVerification
from app.services import notifications

log = logging.getLogger("uvicorn.error")


def generate_code(length: int | None = None) -> str:
    length = length or get_settings().otp_length
    return "".join(secrets.choice(string.digits) for _ in range(length))


def hash_code(email: str, code: str) -> str:
    key = get_settings().secret_key.encode("utf-8")
    return hmac.new(key, f"{email}:{code}".encode("utf-8"), hashlib.sha256).hexdigest()


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored is UTC
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def is_expired(pending: PendingVerification, now: datetime | None = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return _as_utc(pending.expires_at) <= now


def get_for_update(db: Session, email: str, model=PendingVerification):
    return (
        db.query(model)
        .filter(model.email == email)
        .with_for_update()
        .first()
    )


def get_pending(db: Session, email: str) -> PendingVerification | None:
    return db.query(PendingVerification).filter(PendingVerification.email == email).first()


def issue(db: Session, email: str, payload: dict[str, Any] | None = None) -> tuple[PendingVerification, bool]:
    """Create or replace the pending code for email and deliver it.

    With payload, a new registration replaces any earlier one for the email.
    Without payload (resend), the stored payload is kept; raises OtpError(NotFound)
    when there is nothing live to resend. Returns (pending, delivered).
    """
    settings = get_settings()
    code = generate_code()
    # Two tries: a concurrent first insert for the same email loses on the unique key, then updates
    for attempt in range(2):
        now = datetime.now(timezone.utc)
        pending = get_for_update(db, email)
        if pending is None:
            if payload is None:
                raise OtpError(OtpReason.not_found)
            pending = PendingVerification(email=email, payload=payload, resend_count=0)
            db.add(pending)
        elif payload is None:
            if is_expired(pending, now):
                db.delete(pending)
                db.commit()
                raise OtpError(OtpReason.not_found)
            pending.resend_count = (pending.resend_count or 0) + 1
        else:
            pending.payload = payload
            pending.resend_count = 0
        pending.code_hash = hash_code(email, code)
        pending.expires_at = now + timedelta(minutes=settings.otp_ttl_minutes)
        pending.attempts = 0
        try:
            db.commit()
            break
        except IntegrityError:
            db.rollback()
            if attempt:
                log.warning("OTP issue for %s kept colliding on the pending-verification key", email)
                raise StorageConflict()
    db.refresh(pending)
    log.info("OTP issued for %s (resend_count=%s, expires_at=%s)", email, pending.resend_count, pending.expires_at)

    name = (pending.payload or {}).get("name")
    delivered = notifications.send_registration_otp_email(email, code, name)
    if not delivered:
        log.warning("OTP delivery failed for %s; code stays valid until expiry, user may resend", email)
    return pending, delivered


def check_code(db: Session, pending, email: str, submitted_code: str) -> None:
    """Expiry, comparison and attempt cap for any emailed-code record.

    Returns on a match and leaves the record for the caller to consume. Expired
    and exhausted records are deleted; every failure raises OtpError.
    """
    settings = get_settings()
    if pending is None:
        raise OtpError(OtpReason.not_found)

    if is_expired(pending):
        db.delete(pending)
        db.commit()
        log.info("OTP expired for %s", email)
        raise OtpError(OtpReason.expired)

    submitted = (submitted_code or "").strip()
    if not hmac.compare_digest(pending.code_hash, hash_code(email, submitted)):
        pending.attempts = (pending.attempts or 0) + 1
        if pending.attempts > settings.otp_max_attempts:
            db.delete(pending)
            db.commit()
            log.info("OTP exhausted for %s", email)
            raise OtpError(OtpReason.exhausted)
        db.commit()
        log.info("OTP mismatch for %s (attempt %s/%s)", email, pending.attempts, settings.otp_max_attempts)
        raise OtpError(OtpReason.mismatch)


def verify(db: Session, email: str, submitted_code: str) -> dict[str, Any]:
    """Check a submitted code. Returns the stored payload and deletes the record on success."""
    pending = get_for_update(db, email)
    check_code(db, pending, email, submitted_code)

    payload = dict(pending.payload or {})
    db.delete(pending)
    db.commit()
    log.info("OTP verified for %s", email)
    return payload


def purge_expired(db: Session) -> int:
    """Delete pending verifications and password resets past their expiry. Returns how many were removed."""
    now = datetime.now(timezone.utc)
    deleted = 0
    for model in (PendingVerification, PasswordReset):
        deleted += (
            db.query(model)
            .filter(model.expires_at < now)
            .delete(synchronize_session=False)
        )
    db.commit()
    return deleted
