"""Known organization logos, used as the reference when a new organization registers with a logo."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.database import Base


class LogoReference(Base):
    __tablename__ = "logo_references"

    id = Column(Integer, primary_key=True, index=True)
    # Lowercased, whitespace-collapsed organization name
    organization_name = Column(String(255), unique=True, nullable=False, index=True)
    logo_hash = Column(String(64), nullable=False)
    source = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
