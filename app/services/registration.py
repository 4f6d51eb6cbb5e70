"""Registration orchestrator.

Draft -> Validated -> (OrgChecked)? -> DuplicateChecked -> OtpPending -> OtpVerified -> Committed,
with Rejected reachable from every step. Stages run strictly in sequence. The
only state kept between requests is the pending verification record, so the
orchestrator itself is created per request.
"""
import enum
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import (
    AuthenticityRejected,
    DuplicateConflict,
    ImageDecodeError,
    NoReferenceHash,
    OtpError,
    OtpReason,
    RegistrationError,
    StorageConflict,
    ValidationError,
)
from app.models.account import Account, AccountKind, Individual, Organization, ROLE_FOR_KIND
from app.schemas.registration import (
    OrganizationRegistration,
    RegistrationPayload,
    RegistrationStartResponse,
    ResendOtpResponse,
)
from app.services import logo_matcher, notifications, otp
from app.services.audit_log import (
    create_log,
    CATEGORY_FAILED_ATTEMPT,
    CATEGORY_REJECTION,
    CATEGORY_STATUS_CHANGE,
)
from app.services.auth import create_access_token, get_password_hash
from app.services.duplicate_checker import check_duplicate
from app.services.org_authenticity import score_organization
from app.services.validator import normalize_email, validate_registration

log = logging.getLogger("uvicorn.error")


class RegistrationStage(str, enum.Enum):
    draft = "draft"
    validated = "validated"
    org_checked = "org-checked"
    duplicate_checked = "duplicate-checked"
    otp_pending = "otp-pending"
    otp_verified = "otp-verified"
    committed = "committed"
    rejected = "rejected"


class RegistrationOrchestrator:
    def __init__(self, db: Session, *, ip_address: str | None = None, user_agent: str | None = None):
        self.db = db
        self.ip_address = ip_address
        self.user_agent = user_agent
        self.stage = RegistrationStage.draft
        self.email: str | None = None

    def _advance(self, stage: RegistrationStage) -> None:
        log.info("Registration %s: %s -> %s", self.email or "-", self.stage.value, stage.value)
        self.stage = stage

    def _reject(self, error: RegistrationError, attempted: RegistrationStage, meta: dict[str, Any] | None = None):
        """Record the rejection and raise it. attempted is the stage that could not be reached."""
        error.stage = attempted.value
        self.db.rollback()
        create_log(
            self.db,
            CATEGORY_REJECTION,
            "Registration rejected",
            f"Registration for {self.email or '(no email)'} rejected before reaching {attempted.value}: {error.message}",
            actor_email=self.email,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            meta={"stage": attempted.value, "error": type(error).__name__, **(meta or {})},
        )
        self.db.commit()
        log.info("Registration %s rejected at %s: %s", self.email or "-", attempted.value, type(error).__name__)
        self.stage = RegistrationStage.rejected
        raise error

    # ---- start: Draft -> ... -> OtpPending ----

    def start(self, raw: Mapping[str, Any], logo: tuple[bytes, str | None] | None = None) -> RegistrationStartResponse:
        self.email = normalize_email(str(raw.get("email") or "")) or None

        result = validate_registration(raw)
        if not result.ok:
            self._reject(
                ValidationError([e.model_dump() for e in result.errors]),
                RegistrationStage.validated,
                meta={"fields": sorted({e.field for e in result.errors})},
            )
        payload = result.payload
        self.email = payload.email
        self._advance(RegistrationStage.validated)

        logo_hash = None
        if isinstance(payload, OrganizationRegistration):
            logo_hash = self._check_organization(payload, logo)
            self._advance(RegistrationStage.org_checked)

        exists = check_duplicate(
            self.db,
            name=payload.name if isinstance(payload, OrganizationRegistration) else None,
            email=payload.email,
            phone=payload.phone,
            reg_number=payload.reg_number if isinstance(payload, OrganizationRegistration) else None,
        )
        if exists:
            self._reject(DuplicateConflict(), RegistrationStage.duplicate_checked)
        self._advance(RegistrationStage.duplicate_checked)

        try:
            pending, delivered = otp.issue(self.db, payload.email, self._pending_payload(payload, logo_hash))
        except StorageConflict as e:
            self._reject(e, RegistrationStage.otp_pending)
        self._advance(RegistrationStage.otp_pending)
        return RegistrationStartResponse(
            stage=self.stage.value,
            email=pending.email,
            expires_in_minutes=get_settings().otp_ttl_minutes,
            delivered=delivered,
            message=(
                "Check your email for the verification code."
                if delivered
                else "We could not send the verification email. Please request a new code."
            ),
        )

    def _check_organization(self, payload: OrganizationRegistration, logo: tuple[bytes, str | None] | None) -> str | None:
        """Heuristic score plus optional logo match; at least one must pass. Returns the uploaded logo hash."""
        authenticity = score_organization(payload.name, payload.reg_number)
        logo_hash = None
        logo_verified = False
        logo_distance = None
        if logo is not None:
            data, filename = logo
            try:
                logo_hash = logo_matcher.hash_upload(data, filename)
                logo_verified, logo_distance = logo_matcher.verify_logo_hash(self.db, payload.name, logo_hash)
            except ImageDecodeError as e:
                log.info("Registration %s: logo not usable (%s)", self.email, e)
            except NoReferenceHash as e:
                log.info("Registration %s: %s", self.email, e)

        log.info(
            "Registration %s: authenticity verified=%s confidence=%.2f keyword=%r logo_verified=%s",
            self.email, authenticity.verified, authenticity.confidence, authenticity.matched_keyword, logo_verified,
        )
        if not (authenticity.verified or logo_verified):
            self._reject(
                AuthenticityRejected(
                    "We could not verify this organization. Check the registration number format or upload your registered logo.",
                    authenticity.confidence,
                ),
                RegistrationStage.org_checked,
                meta={"confidence": authenticity.confidence, "logo_distance": logo_distance},
            )
        return logo_hash

    @staticmethod
    def _pending_payload(payload: RegistrationPayload, logo_hash: str | None) -> dict[str, Any]:
        data = payload.model_dump(exclude={"password"})
        data["hashed_password"] = get_password_hash(payload.password)
        if logo_hash:
            data["logo_hash"] = logo_hash
        return data

    # ---- resend ----

    def resend(self, email: str) -> ResendOtpResponse:
        self.email = normalize_email(email)
        try:
            _, delivered = otp.issue(self.db, self.email)
        except OtpError as e:
            if e.reason == OtpReason.not_found:
                e.status_code = 404
            raise
        self.stage = RegistrationStage.otp_pending
        return ResendOtpResponse(
            expires_in_minutes=get_settings().otp_ttl_minutes,
            delivered=delivered,
            message="A new verification code has been sent." if delivered else "We could not send the verification email. Please try again.",
        )

    # ---- complete: OtpPending -> OtpVerified -> Committed ----

    def complete(self, email: str, code: str) -> tuple[Account, str]:
        self.email = normalize_email(email)
        self.stage = RegistrationStage.otp_pending
        try:
            data = otp.verify(self.db, self.email, code)
        except OtpError as e:
            e.stage = RegistrationStage.otp_verified.value
            create_log(
                self.db,
                CATEGORY_FAILED_ATTEMPT,
                "Registration OTP failed",
                f"OTP verification failed for {self.email}: {e.reason.value}.",
                actor_email=self.email,
                ip_address=self.ip_address,
                user_agent=self.user_agent,
                meta={"reason": e.reason.value},
            )
            self.db.commit()
            raise
        self._advance(RegistrationStage.otp_verified)

        account = self._create_account(data)
        self._advance(RegistrationStage.committed)
        token = create_access_token(account.id, account.email, account.role)
        notifications.send_welcome_email(account.email, account.name, account.kind.value)
        return account, token

    def _create_account(self, data: dict[str, Any]) -> Account:
        kind = AccountKind(data["kind"])
        common = dict(
            email=data["email"],
            phone=data["phone"],
            hashed_password=data["hashed_password"],
            role=ROLE_FOR_KIND[kind],
            name=data.get("name"),
        )
        if kind == AccountKind.organization:
            logo_hash = data.get("logo_hash")
            account = Organization(
                **common,
                reg_number=data.get("reg_number"),
                address=data.get("address"),
                logo_hash=logo_hash,
                logo_updated_at=datetime.now(timezone.utc) if logo_hash else None,
            )
        else:
            account = Individual(**common)
        self.db.add(account)
        try:
            self.db.flush()
        except IntegrityError:
            # Another registration committed the same email/phone/reg number after our duplicate check
            self._reject(StorageConflict(), RegistrationStage.committed)
        create_log(
            self.db,
            CATEGORY_STATUS_CHANGE,
            "Account created",
            f"{kind.value.capitalize()} account {account.email} created after OTP verification.",
            actor_account_id=account.id,
            actor_email=account.email,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            meta={"kind": kind.value, "has_logo": bool(data.get("logo_hash"))},
        )
        try:
            self.db.commit()
        except IntegrityError:
            self._reject(StorageConflict(), RegistrationStage.committed)
        self.db.refresh(account)
        return account
