"""Shared dependencies: DB session, current account, request context."""
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.account import Account, Organization
from app.services.auth import decode_access_token

security = HTTPBearer(auto_error=False)


def get_current_account(
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Account:
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    payload, _ = decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        account_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")
    account = db.query(Account).filter(Account.id == account_id).first()
    if not account:
        raise HTTPException(status_code=401, detail="Account not found")
    return account


def require_organization(current_account: Account = Depends(get_current_account)) -> Organization:
    if not isinstance(current_account, Organization):
        raise HTTPException(status_code=403, detail="Organization account required")
    return current_account


def request_context(request: Request) -> dict:
    """Client IP and user agent for the audit trail."""
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": (request.headers.get("user-agent") or "").strip() or None,
    }
