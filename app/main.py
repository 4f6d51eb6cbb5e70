"""Job Portal registration service – FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.database import Base, engine, SessionLocal
from app.errors import RegistrationError
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from app.models import Account, Individual, Organization, PendingVerification, PasswordReset, LogoReference, AuditLog  # noqa: F401
from app.routers import auth, organizations, registration, verification

settings = get_settings()
log = logging.getLogger("uvicorn.error")
app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(registration.router)
app.include_router(verification.router)
app.include_router(auth.router)
app.include_router(organizations.router)


@app.exception_handler(RegistrationError)
def registration_error_handler(request: Request, exc: RegistrationError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.on_event("startup")
def startup():
    from app.services.notifications import mail_provider_configured
    if not mail_provider_configured():
        if settings.otp_console_delivery:
            log.warning("[Email] No mail provider configured - verification codes are printed to the console (dev mode)")
        else:
            log.warning("[Email] No mail provider configured - verification codes will not be delivered")
    try:
        Base.metadata.create_all(bind=engine)
        if settings.logo_reference_dir:
            from app.seed import seed_logo_references
            db = SessionLocal()
            try:
                seeded = seed_logo_references(db, settings.logo_reference_dir)
                log.info("Seeded %d logo reference(s) from %s", seeded, settings.logo_reference_dir)
            finally:
                db.close()
    except Exception as e:
        log.warning("Database startup failed (tables/seed skipped). Check DATABASE_URL and network. Error: %s", e)

    if settings.pending_cleanup_enabled:
        from apscheduler.schedulers.background import BackgroundScheduler
        from app.services.pending_cleanup import run_pending_cleanup_job
        scheduler = BackgroundScheduler()
        scheduler.add_job(run_pending_cleanup_job, "interval", minutes=settings.pending_cleanup_interval_minutes)
        scheduler.start()
        app.state.scheduler = scheduler


@app.on_event("shutdown")
def shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
