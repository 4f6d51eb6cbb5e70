"""Test setup: throwaway SQLite database and upload dir, in-process TestClient."""
import io
import os
import random
import tempfile

_tmp = tempfile.mkdtemp(prefix="jobportal_test_")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_tmp, "uploads")
os.environ["PENDING_CLEANUP_ENABLED"] = "false"
os.environ["MAILGUN_API_KEY"] = ""
os.environ["SENDGRID_API_KEY"] = ""
os.environ["LOGO_REFERENCE_DIR"] = ""

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.config import get_settings
from app.database import Base, SessionLocal, engine
from app import models  # noqa: F401
from app.main import app

VALID_PASSWORD = "Abcd123!"


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def sent_codes(monkeypatch):
    """Capture OTP codes instead of delivering them. Maps email -> latest code."""
    codes = {}

    def fake_send(to_email, code, name=None):
        codes[to_email] = code
        return True

    monkeypatch.setattr("app.services.notifications.send_registration_otp_email", fake_send)
    monkeypatch.setattr("app.services.notifications.send_welcome_email", lambda *args, **kwargs: True)
    return codes


@pytest.fixture
def reset_codes(monkeypatch):
    """Capture password reset codes. Maps email -> latest code."""
    codes = {}

    def fake_send(to_email, code, name=None):
        codes[to_email] = code
        return True

    monkeypatch.setattr("app.services.notifications.send_password_reset_email", fake_send)
    return codes


def wrong_code(code: str) -> str:
    return "000000" if code != "000000" else "111111"


def make_logo(seed: int, fmt: str = "PNG", size: int = 256, quality: int = 90) -> bytes:
    """Blocky 4x4 grid of random gray levels: strong low-frequency structure, distinct per seed."""
    rng = random.Random(seed)
    cells = 4
    img = Image.new("RGB", (size, size), "white")
    cell = size // cells
    for row in range(cells):
        for col in range(cells):
            level = rng.randint(0, 255)
            img.paste((level, level, level), (col * cell, row * cell, (col + 1) * cell, (row + 1) * cell))
    buf = io.BytesIO()
    if fmt == "JPEG":
        img.save(buf, fmt, quality=quality)
    else:
        img.save(buf, fmt)
    return buf.getvalue()


def individual_form(**overrides) -> dict:
    form = {
        "kind": "individual",
        "email": "a@x.com",
        "phone": "0771234567",
        "password": VALID_PASSWORD,
        "confirmPassword": VALID_PASSWORD,
        "agreeToTerms": "true",
    }
    form.update(overrides)
    return form


def organization_form(**overrides) -> dict:
    form = {
        "kind": "organization",
        "name": "Lanka Traders Pvt Ltd",
        "email": "hr@lankatraders.lk",
        "phone": "0112345678",
        "password": VALID_PASSWORD,
        "confirmPassword": VALID_PASSWORD,
        "regNumber": "",
        "address": "12 Main Street, Colombo",
        "agreeToTerms": "true",
    }
    form.update(overrides)
    return form
