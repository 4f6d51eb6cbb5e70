from app.services import logo_matcher

from conftest import individual_form, make_logo, organization_form


def _register_org_with_logo(client, db, sent_codes, logo):
    logo_matcher.register_reference(db, "Acme", logo_matcher.compute_hash(logo))
    db.commit()
    form = organization_form(name="Acme", email="info@acme.io", regNumber="X")
    client.post("/register/start", data=form, files={"logo": ("logo.png", logo, "image/png")})
    r = client.post("/register/verify-otp", json={"email": "info@acme.io", "otp": sent_codes["info@acme.io"]})
    assert r.status_code == 201, r.text
    return r.json()["token"]


def test_verify_logo_match_and_mismatch(client, db, sent_codes):
    logo = make_logo(31)
    _register_org_with_logo(client, db, sent_codes, logo)

    r = client.post("/verify-logo", data={"organizationName": "acme"}, files={"logo": ("l.png", logo, "image/png")})
    assert r.status_code == 200
    assert r.json()["verified"] is True
    assert r.json()["distance"] == 0

    stored = logo_matcher.compute_hash(logo)
    other = make_logo(32)
    r = client.post("/verify-logo", data={"organizationName": "Acme"}, files={"logo": ("l.png", other, "image/png")})
    assert r.json()["distance"] == logo_matcher.distance(stored, logo_matcher.compute_hash(other))


def test_verify_logo_without_reference_is_not_verified(client, db):
    r = client.post("/verify-logo", data={"organizationName": "Nobody"}, files={"logo": ("l.png", make_logo(1), "image/png")})
    assert r.status_code == 200
    assert r.json()["verified"] is False
    assert r.json()["distance"] is None


def test_verify_logo_with_corrupt_image_is_not_verified(client, db, settings):
    logo_matcher.register_reference(db, "Acme", "00000000000000ff")
    db.commit()
    r = client.post("/verify-logo", data={"organizationName": "Acme"}, files={"logo": ("l.png", b"junk", "image/png")})
    assert r.status_code == 200
    assert r.json()["verified"] is False


def test_verify_logo_requires_name_and_file(client):
    assert client.post("/verify-logo", data={"organizationName": "Acme"}).status_code == 400


def test_check_duplicate(client, db, sent_codes):
    r = client.post("/check-duplicate", json={"email": "a@x.com"})
    assert r.json() == {"exists": False}

    client.post("/register/start", data=individual_form())
    client.post("/register/verify-otp", json={"email": "a@x.com", "otp": sent_codes["a@x.com"]})

    assert client.post("/check-duplicate", json={"phone": "0771234567"}).json() == {"exists": True}
    assert client.post("/check-duplicate", json={"regNumber": "PV/1/2019"}).json() == {"exists": False}
    assert client.post("/check-duplicate", json={}).status_code == 400


def test_verify_organization(client):
    r = client.post("/verify-organization", json={"name": "Lanka Traders Pvt Ltd"})
    assert r.status_code == 200
    body = r.json()
    assert body["verified"] is True
    assert body["confidence"] == 0.75
    assert body["matchedKeyword"] is not None

    r = client.post("/verify-organization", json={"name": "Acme", "regNumber": "X"})
    assert r.json()["verified"] is False
    assert r.json()["regNumberFormatValid"] is False


def test_logo_update(client, db, sent_codes):
    token = _register_org_with_logo(client, db, sent_codes, make_logo(41))
    new_logo = make_logo(42)
    r = client.put(
        "/organizations/me/logo",
        files={"logo": ("new.png", new_logo, "image/png")},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 200, r.text

    r = client.post("/verify-logo", data={"organizationName": "Acme"}, files={"logo": ("l.png", new_logo, "image/png")})
    assert r.json()["verified"] is True
    assert r.json()["distance"] == 0


def test_logo_update_requires_organization(client, db, sent_codes):
    client.post("/register/start", data=individual_form())
    token = client.post("/register/verify-otp", json={"email": "a@x.com", "otp": sent_codes["a@x.com"]}).json()["token"]
    r = client.put(
        "/organizations/me/logo",
        files={"logo": ("new.png", make_logo(1), "image/png")},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 403
