"""Registration: start (validate, verify organization, duplicate check, issue OTP), resend, verify and commit."""
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import request_context
from app.schemas.auth import RegistrationComplete, account_to_response
from app.schemas.registration import (
    RegistrationStartResponse,
    ResendOtpRequest,
    ResendOtpResponse,
    VerifyOtpRequest,
)
from app.services.registration import RegistrationOrchestrator

router = APIRouter(prefix="/register", tags=["registration"])


@router.post("/start", status_code=202, response_model=RegistrationStartResponse)
def start_registration(
    kind: str = Form(""),
    name: str = Form(""),
    email: str = Form(""),
    phone: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    reg_number: str = Form("", alias="regNumber"),
    address: str = Form(""),
    agree_to_terms: str = Form("", alias="agreeToTerms"),
    logo: UploadFile | None = File(None),
    ctx: dict = Depends(request_context),
    db: Session = Depends(get_db),
):
    """Every form field is optional here so the validator can report all missing/invalid fields together."""
    raw = {
        "kind": kind,
        "name": name,
        "email": email,
        "phone": phone,
        "password": password,
        "confirmPassword": confirm_password,
        "regNumber": reg_number,
        "address": address,
        "agreeToTerms": agree_to_terms,
    }
    upload = None
    if logo is not None and logo.filename:
        upload = (logo.file.read(), logo.filename)
    return RegistrationOrchestrator(db, **ctx).start(raw, logo=upload)


@router.post("/resend-otp", response_model=ResendOtpResponse)
def resend_otp(data: ResendOtpRequest, ctx: dict = Depends(request_context), db: Session = Depends(get_db)):
    return RegistrationOrchestrator(db, **ctx).resend(data.email)


@router.post("/verify-otp", status_code=201, response_model=RegistrationComplete)
def verify_otp(data: VerifyOtpRequest, ctx: dict = Depends(request_context), db: Session = Depends(get_db)):
    account, token = RegistrationOrchestrator(db, **ctx).complete(data.email, data.otp)
    return RegistrationComplete(account=account_to_response(account), token=token)
