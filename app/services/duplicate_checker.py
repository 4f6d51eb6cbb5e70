"""Cross-collection duplicate detection for registration identity fields.

Only a yes/no answer is returned; callers never learn which field or which
account collided. Lookup errors fail closed (reported as a duplicate).
"""
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.account import Individual, Organization
from app.services.logo_matcher import normalize_name
from app.services.validator import normalize_email, normalize_phone, normalize_reg_number

log = logging.getLogger("uvicorn.error")


def _individual_predicates(email: str | None, phone: str | None) -> list:
    preds = []
    if email:
        preds.append(Individual.email == email)
    if phone:
        preds.append(Individual.phone == phone)
    return preds


def _organization_predicates(name: str | None, email: str | None, phone: str | None, reg_number: str | None) -> list:
    preds = []
    if name:
        preds.append(func.lower(Organization.name) == name)
    if email:
        preds.append(Organization.email == email)
    if phone:
        preds.append(Organization.phone == phone)
    if reg_number:
        preds.append(Organization.reg_number == reg_number)
    return preds


def check_duplicate(
    db: Session,
    *,
    name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    reg_number: str | None = None,
) -> bool:
    """True if an individual or organization already uses any of the given fields."""
    name = normalize_name(name) or None
    email = normalize_email(email) or None
    phone = normalize_phone(phone) or None
    reg_number = normalize_reg_number(reg_number)
    if not (name or email or phone or reg_number):
        raise ValueError("At least one of name, email, phone, or regNumber is required")

    try:
        individual_preds = _individual_predicates(email, phone)
        if individual_preds and db.query(Individual.id).filter(or_(*individual_preds)).first() is not None:
            return True
        org_preds = _organization_predicates(name, email, phone, reg_number)
        if org_preds and db.query(Organization.id).filter(or_(*org_preds)).first() is not None:
            return True
        return False
    except Exception:
        log.exception("Duplicate check failed; treating as duplicate")
        db.rollback()
        return True
