"""Login, current account and OTP-gated password reset."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.dependencies import get_current_account, request_context
from app.models.account import Account
from app.schemas.auth import (
    AccountLogin,
    AccountResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    PasswordResetRequest,
    PasswordResetResponse,
    ResetCodeVerifyRequest,
    ResetCodeVerifyResponse,
    Token,
    account_to_response,
)
from app.services.audit_log import create_log, CATEGORY_FAILED_ATTEMPT
from app.services import password_reset
from app.services.auth import create_access_token, verify_password
from app.services.validator import normalize_email

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
def login(data: AccountLogin, ctx: dict = Depends(request_context), db: Session = Depends(get_db)):
    email = normalize_email(data.email)
    account = db.query(Account).filter(Account.email == email).first()
    if not account or not verify_password(data.password, account.hashed_password):
        create_log(
            db,
            CATEGORY_FAILED_ATTEMPT,
            "Login failed",
            f"Failed login attempt for email: {email}.",
            actor_email=email,
            meta={"reason": "invalid_email_or_password"},
            **ctx,
        )
        db.commit()
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = create_access_token(account.id, account.email, account.role)
    return Token(access_token=token, account=account_to_response(account))


@router.get("/me", response_model=AccountResponse)
def me(current: Account = Depends(get_current_account)):
    return account_to_response(current)


@router.post("/forgot-password", status_code=202, response_model=ForgotPasswordResponse)
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """Same answer whether or not the email has an account."""
    if not normalize_email(data.email):
        raise HTTPException(status_code=400, detail="Email is required")
    password_reset.request_reset(db, data.email)
    return ForgotPasswordResponse(expires_in_minutes=get_settings().otp_ttl_minutes)


@router.post("/reset-password-verify", response_model=ResetCodeVerifyResponse)
def reset_password_verify(data: ResetCodeVerifyRequest, ctx: dict = Depends(request_context), db: Session = Depends(get_db)):
    token = password_reset.verify_reset_code(db, data.email, data.otp, **ctx)
    return ResetCodeVerifyResponse(reset_token=token, expires_in_minutes=get_settings().otp_ttl_minutes)


@router.post("/reset-password", response_model=PasswordResetResponse)
def reset_password(data: PasswordResetRequest, ctx: dict = Depends(request_context), db: Session = Depends(get_db)):
    password_reset.reset_password(db, data.email, data.reset_token, data.password, data.confirm_password, **ctx)
    return PasswordResetResponse()
