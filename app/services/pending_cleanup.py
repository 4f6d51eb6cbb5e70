"""Delete pending verifications whose OTP expired without being used."""
import logging

from sqlalchemy.orm import Session
from app.database import SessionLocal
from app.services.otp import purge_expired


def run_pending_cleanup_job() -> int:
    """Scheduled purge of expired pending verifications."""
    db: Session = SessionLocal()
    try:
        deleted = purge_expired(db)
        if deleted:
            logging.getLogger("uvicorn.error").info("Pending cleanup: deleted %d expired pending verification(s).", deleted)
        return deleted
    finally:
        db.close()
