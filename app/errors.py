"""Registration error taxonomy.

Every component error is translated into one of these at the orchestrator
boundary; main.py renders them with a single exception handler.
"""
from __future__ import annotations

import enum
from typing import Any


class RegistrationError(Exception):
    """Base for errors that end a registration step. Carries the HTTP status and response body."""

    status_code = 400

    def __init__(self, message: str, *, stage: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message}
        if self.stage:
            body["stage"] = self.stage
        return body


class ValidationError(RegistrationError):
    """Field-level errors, all of them from one validation pass."""

    status_code = 400

    def __init__(self, errors: list[dict[str, str]], *, stage: str | None = None):
        super().__init__("Please correct the highlighted fields.", stage=stage)
        self.errors = errors

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["errors"] = self.errors
        return body


class AuthenticityRejected(RegistrationError):
    status_code = 422

    def __init__(self, message: str, confidence: float, *, stage: str | None = None):
        super().__init__(message, stage=stage)
        self.confidence = confidence

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["confidence"] = self.confidence
        return body


DUPLICATE_MESSAGE = "An account with these details already exists. Use a different email, phone, name or registration number."


class DuplicateConflict(RegistrationError):
    """Never says which field or which account collided."""

    status_code = 409

    def __init__(self, message: str = DUPLICATE_MESSAGE, *, stage: str | None = None):
        super().__init__(message, stage=stage)


class StorageConflict(DuplicateConflict):
    """A uniqueness constraint fired at commit time. Shown to the user exactly like DuplicateConflict."""


class OtpReason(str, enum.Enum):
    not_found = "NotFound"
    expired = "Expired"
    mismatch = "Mismatch"
    exhausted = "Exhausted"


_OTP_MESSAGES = {
    OtpReason.not_found: "No pending verification for this email. Please register again.",
    OtpReason.expired: "The verification code has expired. Please register again.",
    OtpReason.mismatch: "Invalid verification code. Please try again.",
    OtpReason.exhausted: "Too many incorrect attempts. Please start the registration again.",
}


class OtpError(RegistrationError):
    status_code = 400

    def __init__(self, reason: OtpReason, *, stage: str | None = None, status_code: int | None = None):
        super().__init__(_OTP_MESSAGES[reason], stage=stage, status_code=status_code)
        self.reason = reason

    def to_body(self) -> dict[str, Any]:
        body = super().to_body()
        body["reason"] = self.reason.value
        return body


class ResetTokenInvalid(RegistrationError):
    """Reset token missing, wrong, already used, or for an email with no verified code."""

    status_code = 400

    def __init__(self, message: str = "This password reset is invalid or has expired. Please request a new code.", *, stage: str | None = None):
        super().__init__(message, stage=stage)


class LogoVerificationError(Exception):
    """Logo could not be compared. Always treated as 'not verified'."""


class ImageDecodeError(LogoVerificationError):
    pass


class NoReferenceHash(LogoVerificationError):
    pass
