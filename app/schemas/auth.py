"""Auth schemas: login, token, account representation."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.account import AccountKind, AccountRole


class AccountLogin(BaseModel):
    email: str
    password: str


class AccountResponse(BaseModel):
    id: int
    kind: AccountKind
    role: AccountRole
    email: str
    phone: str
    name: str | None = None
    reg_number: str | None = None
    address: str | None = None
    has_logo: bool = False

    class Config:
        from_attributes = True


class TokenPayload(BaseModel):
    sub: int
    email: str
    role: AccountRole


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: AccountResponse


class RegistrationComplete(BaseModel):
    """Response from verify-otp once the account is committed."""
    account: AccountResponse
    token: str
    token_type: str = "bearer"


class ForgotPasswordRequest(BaseModel):
    email: str


class ForgotPasswordResponse(BaseModel):
    message: str = "If an account exists for this email, a reset code has been sent."
    expires_in_minutes: int


class ResetCodeVerifyRequest(BaseModel):
    email: str
    otp: str


class ResetCodeVerifyResponse(BaseModel):
    reset_token: str
    expires_in_minutes: int


class PasswordResetRequest(BaseModel):
    """Accepts resetToken/confirmPassword or snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str
    reset_token: str
    password: str
    confirm_password: str = ""


class PasswordResetResponse(BaseModel):
    message: str = "Your password has been updated. You can now sign in."


def account_to_response(account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        kind=account.kind,
        role=account.role,
        email=account.email,
        phone=account.phone,
        name=account.name,
        reg_number=getattr(account, "reg_number", None),
        address=getattr(account, "address", None),
        has_logo=bool(getattr(account, "logo_hash", None)),
    )
