"""Structural checks on submitted registration fields.

validate_registration() is pure: it never touches the database and reports
every violated rule from one pass so the client can render them all at once.
"""
import re
from typing import Any, Mapping

from email_validator import validate_email, EmailNotValidError

from app.models.account import AccountKind
from app.schemas.registration import (
    FieldError,
    IndividualRegistration,
    OrganizationRegistration,
    ValidationResult,
)

PASSWORD_MIN_LENGTH = 8
PASSWORD_SYMBOLS = "@$!%*?&"
# ASCII digits only; \d would also accept other scripts and defeat phone uniqueness
PHONE_PATTERN = re.compile(r"^[0-9]{9,10}$")

_TRUE_VALUES = {"true"}


def _text(raw: Mapping[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _is_explicit_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return False


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def normalize_phone(value: str | None) -> str:
    """Strip surrounding whitespace and inner spaces/dashes; anything else stays and fails the digit rule."""
    return re.sub(r"[\s\-]", "", (value or "").strip())


def normalize_reg_number(value: str | None) -> str | None:
    s = (value or "").strip().upper()
    return s or None


def password_errors(password: str) -> list[str]:
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one number")
    if not any(ch in PASSWORD_SYMBOLS for ch in password):
        problems.append(f"Password must contain at least one special character ({PASSWORD_SYMBOLS})")
    return problems


def validate_registration(raw: Mapping[str, Any]) -> ValidationResult:
    """Validate raw form fields. Keys: kind, name, email, phone, password, confirmPassword,
    regNumber, address, agreeToTerms (snake_case variants accepted)."""
    errors: list[FieldError] = []

    def fail(field: str, message: str) -> None:
        errors.append(FieldError(field=field, message=message))

    kind_raw = _text(raw, "kind").lower()
    try:
        kind = AccountKind(kind_raw)
    except ValueError:
        kind = None
        fail("kind", "Please select an account type (individual or organization)")

    email = normalize_email(_text(raw, "email"))
    if not email:
        fail("email", "Email is required")
    else:
        try:
            email = validate_email(email, check_deliverability=False).normalized.lower()
        except EmailNotValidError:
            fail("email", "Invalid email address")

    phone = normalize_phone(_text(raw, "phone"))
    if not PHONE_PATTERN.match(phone):
        fail("phone", "Phone number must be 9 or 10 digits")

    password = raw.get("password") or ""
    for message in password_errors(password):
        fail("password", message)

    confirm = raw.get("confirmPassword", raw.get("confirm_password")) or ""
    if confirm != password:
        fail("confirmPassword", "Passwords do not match")

    if not _is_explicit_true(raw.get("agreeToTerms", raw.get("agree_to_terms"))):
        fail("agreeToTerms", "You must accept the terms and privacy policy")

    name = " ".join(_text(raw, "name").split())
    reg_number = normalize_reg_number(_text(raw, "regNumber") or _text(raw, "reg_number"))
    address = _text(raw, "address") or None

    if kind == AccountKind.organization and not name:
        fail("name", "Organization name is required")

    if errors:
        return ValidationResult(errors=errors)

    if kind == AccountKind.organization:
        payload = OrganizationRegistration(
            email=email,
            phone=phone,
            password=password,
            name=name,
            reg_number=reg_number,
            address=address,
        )
    else:
        payload = IndividualRegistration(email=email, phone=phone, password=password, name=name or None)
    return ValidationResult(payload=payload)
