import pytest

from app.services.org_authenticity import BUSINESS_NAME_KEYWORDS, reg_number_format_valid, score_organization


def test_keyword_only():
    result = score_organization("Lanka Traders Pvt Ltd", None)
    assert result.verified is True
    assert result.confidence == 0.75
    assert result.matched_keyword is not None
    assert result.reg_number_format_valid is False


def test_keyword_and_format():
    result = score_organization("Ceylon Foods", "PV/12345/2019")
    assert result.verified is True
    assert result.confidence == 0.95


def test_format_only():
    result = score_organization("Acme", "pv/12/2020")
    assert result.verified is True
    assert result.confidence == 0.70
    assert result.matched_keyword is None


def test_neither():
    result = score_organization("Acme", "X")
    assert result.verified is False
    assert result.confidence == 0.20
    assert result.matched_keyword is None
    assert result.reg_number_format_valid is False


@pytest.mark.parametrize("reg", ["PV/1/2019", "ABCD/123456/2001", "pq/99/1999"])
def test_valid_reg_formats(reg):
    assert reg_number_format_valid(reg)


@pytest.mark.parametrize("reg", ["", None, "X", "PV-12-2019", "ABCDE/1/2019", "PV/1234567/2019", "PV/12/19", "12/PV/2019"])
def test_invalid_reg_formats(reg):
    assert not reg_number_format_valid(reg)


@pytest.mark.parametrize("reg", [None, "X", "PV/12/2019"])
def test_keyword_never_lowers_score(reg):
    without = score_organization("Acme", reg)
    for keyword in BUSINESS_NAME_KEYWORDS:
        with_keyword = score_organization(f"Acme {keyword}", reg)
        assert with_keyword.confidence >= without.confidence


def test_camel_case_output():
    dumped = score_organization("Acme", "X").model_dump(by_alias=True)
    assert set(dumped) >= {"matchedKeyword", "regNumberFormatValid", "confidence", "verified"}
