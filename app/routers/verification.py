"""Standalone checks the client runs before or outside registration: logo, duplicates, organization heuristics."""
import logging
import math

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import ImageDecodeError, NoReferenceHash
from app.schemas.registration import (
    AuthenticityResult,
    DuplicateCheckRequest,
    DuplicateCheckResponse,
    LogoVerificationResponse,
    OrganizationCheckRequest,
)
from app.services import logo_matcher
from app.services.duplicate_checker import check_duplicate
from app.services.org_authenticity import score_organization

router = APIRouter(tags=["verification"])
log = logging.getLogger("uvicorn.error")


@router.post("/verify-logo", response_model=LogoVerificationResponse)
def verify_logo(
    organization_name: str = Form("", alias="organizationName"),
    logo: UploadFile | None = File(None),
    db: Session = Depends(get_db),
):
    """Compare an uploaded logo with the organization's stored logo hash."""
    if not organization_name.strip() or logo is None or not logo.filename:
        raise HTTPException(status_code=400, detail="Missing organization name or logo.")
    try:
        uploaded = logo_matcher.hash_upload(logo.file.read(), logo.filename)
        verified, dist = logo_matcher.verify_logo_hash(db, organization_name, uploaded)
    except ImageDecodeError as e:
        log.info("verify-logo: %s", e)
        return LogoVerificationResponse(verified=False, message="The uploaded file could not be read as an image.")
    except NoReferenceHash:
        return LogoVerificationResponse(verified=False, message="No stored logo for this organization.")
    return LogoVerificationResponse(
        verified=verified,
        distance=None if math.isinf(dist) else int(dist),
        message="Organization verified successfully." if verified else "Logo mismatch. Please upload the correct logo.",
    )


@router.post("/check-duplicate", response_model=DuplicateCheckResponse)
def duplicate_check(data: DuplicateCheckRequest, db: Session = Depends(get_db)):
    try:
        exists = check_duplicate(
            db,
            name=data.name,
            email=data.email,
            phone=data.phone,
            reg_number=data.reg_number,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DuplicateCheckResponse(exists=exists)


@router.post("/verify-organization", response_model=AuthenticityResult)
def verify_organization(data: OrganizationCheckRequest):
    """Heuristic pre-check only; registration runs the same scoring again."""
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="Organization name is required")
    return score_organization(data.name, data.reg_number)
