import math
import os

import pytest

from app.errors import ImageDecodeError, NoReferenceHash
from app.models.account import AccountRole, Organization
from app.services import logo_matcher
from app.services.auth import get_password_hash

from conftest import make_logo


def test_hash_is_deterministic_and_fixed_length():
    data = make_logo(1)
    first = logo_matcher.compute_hash(data)
    assert first == logo_matcher.compute_hash(data)
    assert len(first) == logo_matcher.HASH_HEX_LENGTH
    int(first, 16)


def test_distance_properties():
    a = logo_matcher.compute_hash(make_logo(1))
    b = logo_matcher.compute_hash(make_logo(2))
    assert logo_matcher.distance(a, a) == 0
    assert logo_matcher.distance(a, b) == logo_matcher.distance(b, a)
    assert logo_matcher.distance(a, None) == math.inf
    assert logo_matcher.distance("", b) == math.inf
    assert logo_matcher.distance(a, a + "00") == math.inf


def test_distance_counts_differing_bits():
    assert logo_matcher.distance("0000000000000000", "0000000000000003") == 2
    assert logo_matcher.distance("ffffffffffffffff", "0000000000000000") == 64


def test_reencoded_logo_matches_and_different_logo_does_not(settings):
    original = logo_matcher.compute_hash(make_logo(7))
    reencoded = logo_matcher.compute_hash(make_logo(7, fmt="JPEG", size=200, quality=85))
    other = logo_matcher.compute_hash(make_logo(8))
    assert logo_matcher.distance(original, reencoded) <= settings.logo_hash_threshold
    assert logo_matcher.is_match(original, reencoded)
    assert logo_matcher.distance(original, other) > logo_matcher.distance(original, reencoded)


def test_corrupt_or_empty_image_raises():
    with pytest.raises(ImageDecodeError):
        logo_matcher.compute_hash(b"definitely not an image")
    with pytest.raises(ImageDecodeError):
        logo_matcher.compute_hash(b"")


def test_temporary_file_removed_after_hashing(settings):
    path = logo_matcher.save_upload(make_logo(3), "logo.png")
    assert os.path.exists(path)
    logo_matcher.hash_file(path)
    assert not os.path.exists(path)


def test_temporary_file_removed_when_decode_fails(settings):
    path = logo_matcher.save_upload(b"garbage", "logo.png")
    with pytest.raises(ImageDecodeError):
        logo_matcher.hash_file(path)
    assert not os.path.exists(path)
    assert os.listdir(settings.upload_dir) == []


def test_missing_file_is_decode_error():
    with pytest.raises(ImageDecodeError):
        logo_matcher.hash_file("/nonexistent/logo.png")


def test_reference_lookup_prefers_registered_organization(db):
    with pytest.raises(NoReferenceHash):
        logo_matcher.find_reference_hash(db, "Acme")

    logo_matcher.register_reference(db, "  ACME ", "00000000000000ff")
    db.commit()
    assert logo_matcher.find_reference_hash(db, "acme") == "00000000000000ff"

    db.add(Organization(
        email="info@acme.io", phone="0111111111", hashed_password=get_password_hash("Abcd123!"),
        role=AccountRole.company, name="Acme", logo_hash="ffff000000000000",
    ))
    db.commit()
    assert logo_matcher.find_reference_hash(db, "Acme") == "ffff000000000000"


def test_verify_logo_hash(db):
    stored = logo_matcher.compute_hash(make_logo(11))
    logo_matcher.register_reference(db, "Acme", stored)
    db.commit()
    verified, dist = logo_matcher.verify_logo_hash(db, "Acme", stored)
    assert verified and dist == 0
    inverted = f"{~int(stored, 16) & (2 ** 64 - 1):016x}"
    verified, dist = logo_matcher.verify_logo_hash(db, "Acme", inverted)
    assert not verified and dist == 64
