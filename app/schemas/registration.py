"""Registration schemas: normalized payloads (tagged by kind) and API bodies."""
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Accepts and emits camelCase (regNumber) while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IndividualRegistration(BaseModel):
    kind: Literal["individual"] = "individual"
    email: str
    phone: str
    password: str
    name: str | None = None


class OrganizationRegistration(BaseModel):
    kind: Literal["organization"] = "organization"
    email: str
    phone: str
    password: str
    name: str
    reg_number: str | None = None
    address: str | None = None


RegistrationPayload = Union[IndividualRegistration, OrganizationRegistration]


class FieldError(BaseModel):
    field: str
    message: str


class ValidationResult(BaseModel):
    payload: RegistrationPayload | None = None
    errors: list[FieldError] = []

    @property
    def ok(self) -> bool:
        return not self.errors and self.payload is not None


class RegistrationStartResponse(BaseModel):
    stage: str = "otp-pending"
    email: str
    expires_in_minutes: int
    delivered: bool = True
    message: str = "Check your email for the verification code."


class ResendOtpRequest(BaseModel):
    email: str


class ResendOtpResponse(BaseModel):
    stage: str = "otp-pending"
    expires_in_minutes: int
    delivered: bool = True
    message: str = "A new verification code has been sent."


class VerifyOtpRequest(BaseModel):
    email: str
    otp: str


class AuthenticityResult(_CamelModel):
    matched_keyword: str | None = None
    reg_number_format_valid: bool = False
    confidence: float
    verified: bool
    reason: str = ""


class OrganizationCheckRequest(_CamelModel):
    name: str
    reg_number: str | None = None


class DuplicateCheckRequest(_CamelModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    reg_number: str | None = None


class DuplicateCheckResponse(BaseModel):
    exists: bool


class LogoVerificationResponse(BaseModel):
    verified: bool
    distance: int | None = None
    message: str = ""
