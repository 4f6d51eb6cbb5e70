"""Seed known organization logos from a directory of images.

File stem is the organization name: lanka_traders_pvt_ltd.png -> "lanka traders pvt ltd".
"""
import logging
from pathlib import Path

from sqlalchemy.orm import Session

from app.errors import ImageDecodeError
from app.services.logo_matcher import compute_hash, register_reference

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp"}


def seed_logo_references(db: Session, directory: str) -> int:
    folder = Path(directory)
    if not folder.is_dir():
        return 0
    count = 0
    for path in sorted(folder.iterdir()):
        if path.suffix.lower() not in IMAGE_SUFFIXES:
            continue
        name = path.stem.replace("_", " ").replace("-", " ")
        try:
            logo_hash = compute_hash(path.read_bytes())
        except ImageDecodeError as e:
            logging.getLogger("uvicorn.error").warning("Skipping logo reference %s: %s", path.name, e)
            continue
        register_reference(db, name, logo_hash, source=path.name)
        count += 1
    db.commit()
    return count
