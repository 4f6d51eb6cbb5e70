"""Registered accounts: individuals and organizations.

Joined-table inheritance: email and phone live on the shared accounts table so
their uniqueness holds across both kinds at the storage level.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from app.database import Base
import enum


class AccountKind(str, enum.Enum):
    individual = "individual"
    organization = "organization"


class AccountRole(str, enum.Enum):
    user = "user"
    company = "company"


ROLE_FOR_KIND = {
    AccountKind.individual: AccountRole.user,
    AccountKind.organization: AccountRole.company,
}


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(SQLEnum(AccountKind), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(SQLEnum(AccountRole), nullable=False)
    name = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __mapper_args__ = {"polymorphic_on": kind}


class Individual(Account):
    __tablename__ = "individuals"

    id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True)

    __mapper_args__ = {"polymorphic_identity": AccountKind.individual}


class Organization(Account):
    __tablename__ = "organizations"

    id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True)
    # NULLs do not collide, so organizations without a registration number are allowed
    reg_number = Column(String(64), unique=True, index=True, nullable=True)
    address = Column(String(500), nullable=True)

    # Perceptual hash of the registered logo; changed only through the logo-update endpoint
    logo_hash = Column(String(64), nullable=True)
    logo_updated_at = Column(DateTime(timezone=True), nullable=True)

    __mapper_args__ = {"polymorphic_identity": AccountKind.organization}
