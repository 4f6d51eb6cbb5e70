"""
Register (or replace) the known logo for an organization name.
Usage: python scripts/add_logo_reference.py "<organization name>" <image path>
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.database import SessionLocal, engine, Base
from app.errors import ImageDecodeError
from app.models import LogoReference  # noqa: F401
from app.services.logo_matcher import compute_hash, register_reference


def main():
    if len(sys.argv) != 3:
        print('Usage: python scripts/add_logo_reference.py "<organization name>" <image path>')
        sys.exit(1)
    name, path = sys.argv[1].strip(), sys.argv[2]
    try:
        with open(path, "rb") as fh:
            logo_hash = compute_hash(fh.read())
    except (OSError, ImageDecodeError) as e:
        print(f"Could not hash {path}: {e}")
        sys.exit(1)

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ref = register_reference(db, name, logo_hash, source=os.path.basename(path))
        db.commit()
        print(f"Logo reference for '{ref.organization_name}' set to {ref.logo_hash}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
