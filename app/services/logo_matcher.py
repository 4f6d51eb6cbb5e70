"""Perceptual hashing of organization logos.

compute_hash() normalizes the image (flatten transparency onto white, grayscale,
resize to a fixed square), then takes a DCT-based perceptual hash: 64 bits from
the low-frequency 8x8 block of a 32x32 DCT, each bit set when the coefficient is
above the block median. The result is a 16-character hex string. The same input
bytes always produce the same hash.

Uploaded files are written to a temporary path and deleted after hashing on
every exit path.
"""
from __future__ import annotations

import io
import logging
import math
import os
import re
import tempfile
from datetime import datetime, timezone

import numpy as np
from PIL import Image, UnidentifiedImageError
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import ImageDecodeError, NoReferenceHash
from app.models.account import Organization
from app.models.logo_reference import LogoReference

log = logging.getLogger("uvicorn.error")

HASH_SIZE = 8
DCT_SIZE = HASH_SIZE * 4
HASH_HEX_LENGTH = HASH_SIZE * HASH_SIZE // 4


def _dct_matrix(n: int) -> np.ndarray:
    """Orthonormal DCT-II basis; matrix @ x gives the 1-D transform of column x."""
    k = np.arange(n).reshape(-1, 1)
    i = np.arange(n).reshape(1, -1)
    basis = np.cos(np.pi * (2 * i + 1) * k / (2 * n))
    basis[0, :] *= 1 / math.sqrt(2)
    return basis * math.sqrt(2 / n)


_DCT = _dct_matrix(DCT_SIZE)


def _normalize(image: Image.Image, size: int) -> Image.Image:
    if image.mode in ("RGBA", "LA", "P"):
        rgba = image.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        image = Image.alpha_composite(background, rgba)
    return image.convert("L").resize((size, size), Image.Resampling.LANCZOS)


def compute_hash(image_bytes: bytes) -> str:
    if not image_bytes:
        raise ImageDecodeError("No image data.")
    settings = get_settings()
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
            normalized = _normalize(img, settings.logo_normalize_size)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}") from e

    small = normalized.resize((DCT_SIZE, DCT_SIZE), Image.Resampling.LANCZOS)
    pixels = np.asarray(small, dtype=np.float64)
    coefficients = _DCT @ pixels @ _DCT.T
    low = coefficients[:HASH_SIZE, :HASH_SIZE]
    bits = (low > np.median(low)).flatten()
    value = 0
    for bit in bits:
        value = (value << 1) | int(bit)
    return f"{value:0{HASH_HEX_LENGTH}x}"


def distance(hash_a: str | None, hash_b: str | None) -> float:
    """Number of differing bits. Infinite when either hash is missing or they are not comparable."""
    if not hash_a or not hash_b or len(hash_a) != len(hash_b):
        return math.inf
    try:
        return bin(int(hash_a, 16) ^ int(hash_b, 16)).count("1")
    except ValueError:
        return math.inf


def is_match(hash_a: str | None, hash_b: str | None, threshold: int | None = None) -> bool:
    if threshold is None:
        threshold = get_settings().logo_hash_threshold
    return distance(hash_a, hash_b) <= threshold


def _safe_unlink(path: str | None) -> None:
    if not path:
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        log.warning("Failed to remove temporary upload %s: %s", path, e)


def save_upload(data: bytes, filename: str | None = None) -> str:
    """Write uploaded bytes to a temporary file under upload_dir and return its path."""
    settings = get_settings()
    if len(data) > settings.logo_max_upload_bytes:
        raise ImageDecodeError(f"Logo too large. Maximum size: {settings.logo_max_upload_bytes // (1024 * 1024)}MB")
    os.makedirs(settings.upload_dir, exist_ok=True)
    suffix = os.path.splitext(filename or "")[1][:10]
    fd, path = tempfile.mkstemp(prefix="logo_", suffix=suffix, dir=settings.upload_dir)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
    except OSError:
        _safe_unlink(path)
        raise
    return path


def hash_file(path: str) -> str:
    """Hash a temporary uploaded file, then delete it whether or not hashing succeeded."""
    try:
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as e:
            raise ImageDecodeError(f"Could not read uploaded image: {e}") from e
        return compute_hash(data)
    finally:
        _safe_unlink(path)


def hash_upload(data: bytes, filename: str | None = None) -> str:
    return hash_file(save_upload(data, filename))


def normalize_name(name: str | None) -> str:
    return re.sub(r"\s+", " ", (name or "").strip().lower())


def find_reference_hash(db: Session, organization_name: str) -> str:
    """Stored logo hash for an organization: a registered organization first, then the known-logo registry."""
    key = normalize_name(organization_name)
    if not key:
        raise NoReferenceHash("Organization name is required.")
    org = (
        db.query(Organization)
        .filter(func.lower(Organization.name) == key, Organization.logo_hash.isnot(None))
        .first()
    )
    if org:
        return org.logo_hash
    ref = db.query(LogoReference).filter(LogoReference.organization_name == key).first()
    if ref:
        return ref.logo_hash
    raise NoReferenceHash(f"No stored logo for organization '{organization_name}'.")


def verify_logo_hash(db: Session, organization_name: str, uploaded_hash: str) -> tuple[bool, float]:
    """Compare an uploaded logo hash against the stored reference. Raises NoReferenceHash."""
    reference = find_reference_hash(db, organization_name)
    dist = distance(uploaded_hash, reference)
    verified = dist <= get_settings().logo_hash_threshold
    log.info(
        "Logo compare org=%r uploaded=%s stored=%s distance=%s verified=%s",
        organization_name, uploaded_hash[:8], reference[:8], dist, verified,
    )
    return verified, dist


def register_reference(db: Session, organization_name: str, logo_hash: str, source: str | None = None) -> LogoReference:
    """Insert or replace the known logo for an organization name. Caller commits."""
    key = normalize_name(organization_name)
    ref = db.query(LogoReference).filter(LogoReference.organization_name == key).first()
    if ref is None:
        ref = LogoReference(organization_name=key, logo_hash=logo_hash, source=source)
        db.add(ref)
    else:
        ref.logo_hash = logo_hash
        ref.source = source
    db.flush()
    return ref


def update_organization_logo(db: Session, org: Organization, logo_hash: str) -> Organization:
    """The only path that changes a registered organization's logo hash. Caller commits."""
    org.logo_hash = logo_hash
    org.logo_updated_at = datetime.now(timezone.utc)
    db.flush()
    return org
