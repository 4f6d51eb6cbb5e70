"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from app.models.account import Account, AccountKind, AccountRole, Individual, Organization
from app.models.pending_verification import PendingVerification
from app.models.password_reset import PasswordReset
from app.models.logo_reference import LogoReference
from app.models.audit_log import AuditLog

__all__ = [
    "Account",
    "AccountKind",
    "AccountRole",
    "Individual",
    "Organization",
    "PendingVerification",
    "PasswordReset",
    "LogoReference",
    "AuditLog",
]
