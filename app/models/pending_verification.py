"""Pending signup data: the account is created only after OTP verification."""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import JSONB

from app.database import Base


class PendingVerification(Base):
    __tablename__ = "pending_verifications"

    id = Column(Integer, primary_key=True, index=True)
    # One active record per email; concurrent issue/verify for an email serialize on this key
    email = Column(String(255), unique=True, nullable=False, index=True)

    code_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    resend_count = Column(Integer, nullable=False, default=0)

    # Validated registration payload; password is already hashed. Logo hash included when computed.
    payload = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
