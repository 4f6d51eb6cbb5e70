"""Organization account: explicit logo update."""
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import request_context, require_organization
from app.errors import ImageDecodeError
from app.models.account import Organization
from app.schemas.auth import AccountResponse, account_to_response
from app.services import logo_matcher
from app.services.audit_log import create_log, CATEGORY_STATUS_CHANGE

router = APIRouter(prefix="/organizations", tags=["organizations"])


@router.put("/me/logo", response_model=AccountResponse)
def update_logo(
    logo: UploadFile = File(...),
    ctx: dict = Depends(request_context),
    db: Session = Depends(get_db),
    current: Organization = Depends(require_organization),
):
    """Replace the stored logo hash; the only way it changes after registration."""
    try:
        new_hash = logo_matcher.hash_upload(logo.file.read(), logo.filename)
    except ImageDecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    old_hash = current.logo_hash
    logo_matcher.update_organization_logo(db, current, new_hash)
    create_log(
        db,
        CATEGORY_STATUS_CHANGE,
        "Logo updated",
        f"Organization {current.email} replaced its logo.",
        actor_account_id=current.id,
        actor_email=current.email,
        meta={"old_hash": old_hash, "new_hash": new_hash},
        **ctx,
    )
    db.commit()
    db.refresh(current)
    return account_to_response(current)
