"""OTP-gated password reset for individual and organization accounts.

request_reset -> (code emailed) -> verify_reset_code -> (reset token) -> reset_password.
The code follows the registration OTP rules (hashed, TTL, attempt cap, one-time).
Unknown emails get the same answer as known ones; nothing is sent for them.
"""
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import OtpError, OtpReason, ResetTokenInvalid, StorageConflict, ValidationError
from app.models.account import Account
from app.models.password_reset import PasswordReset
from app.services import notifications, otp
from app.services.audit_log import create_log, CATEGORY_FAILED_ATTEMPT, CATEGORY_STATUS_CHANGE
from app.services.auth import get_password_hash
from app.services.validator import normalize_email, password_errors

log = logging.getLogger("uvicorn.error")


def request_reset(db: Session, email: str) -> bool:
    """Issue a reset code for an existing account. Returns whether a code was delivered."""
    settings = get_settings()
    email = normalize_email(email)
    account = db.query(Account).filter(Account.email == email).first()
    if account is None:
        log.info("Password reset requested for unknown email %s", email)
        return False
    name = account.name

    code = otp.generate_code()
    for attempt in range(2):
        reset = otp.get_for_update(db, email, PasswordReset)
        if reset is None:
            reset = PasswordReset(email=email)
            db.add(reset)
        reset.code_hash = otp.hash_code(email, code)
        reset.reset_token_hash = None
        reset.attempts = 0
        reset.expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.otp_ttl_minutes)
        try:
            db.commit()
            break
        except IntegrityError:
            db.rollback()
            if attempt:
                raise StorageConflict()
    log.info("Password reset code issued for %s", email)

    delivered = notifications.send_password_reset_email(email, code, name)
    if not delivered:
        log.warning("Password reset code delivery failed for %s", email)
    return delivered


def verify_reset_code(
    db: Session,
    email: str,
    code: str,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> str:
    """Spend the emailed code and hand out a reset token valid for another TTL window."""
    settings = get_settings()
    email = normalize_email(email)
    reset = otp.get_for_update(db, email, PasswordReset)
    if reset is not None and reset.reset_token_hash:
        # code already spent
        reset = None
    try:
        otp.check_code(db, reset, email, code)
    except OtpError as e:
        create_log(
            db,
            CATEGORY_FAILED_ATTEMPT,
            "Password reset code failed",
            f"Password reset code check failed for {email}: {e.reason.value}.",
            actor_email=email,
            ip_address=ip_address,
            user_agent=user_agent,
            meta={"reason": e.reason.value},
        )
        db.commit()
        raise

    token = secrets.token_urlsafe(32)
    reset.reset_token_hash = otp.hash_code(email, token)
    reset.expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.otp_ttl_minutes)
    db.commit()
    log.info("Password reset code verified for %s", email)
    return token


def reset_password(
    db: Session,
    email: str,
    reset_token: str,
    password: str,
    confirm_password: str,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Account:
    """Replace the account password. The reset token is consumed on success."""
    email = normalize_email(email)
    errors = [{"field": "password", "message": m} for m in password_errors(password or "")]
    if (confirm_password or "") != (password or ""):
        errors.append({"field": "confirmPassword", "message": "Passwords do not match"})
    if errors:
        raise ValidationError(errors)

    reset = otp.get_for_update(db, email, PasswordReset)
    if reset is None or not reset.reset_token_hash:
        raise ResetTokenInvalid()
    if not hmac.compare_digest(reset.reset_token_hash, otp.hash_code(email, (reset_token or "").strip())):
        raise ResetTokenInvalid()
    if otp.is_expired(reset):
        db.delete(reset)
        db.commit()
        raise OtpError(OtpReason.expired)

    account = db.query(Account).filter(Account.email == email).first()
    if account is None:
        db.delete(reset)
        db.commit()
        raise OtpError(OtpReason.not_found)

    account.hashed_password = get_password_hash(password)
    db.delete(reset)
    create_log(
        db,
        CATEGORY_STATUS_CHANGE,
        "Password reset",
        f"Password reset for {account.kind.value} account {email}.",
        actor_account_id=account.id,
        actor_email=email,
        ip_address=ip_address,
        user_agent=user_agent,
        meta={"kind": account.kind.value},
    )
    db.commit()
    db.refresh(account)
    log.info("Password reset completed for %s", email)
    return account
