"""Organization authenticity scoring from name and registration-number patterns.

This is a best-effort signal that adds friction for obviously made-up
organizations. It is not proof of legitimacy and must not gate anything
security-sensitive.
"""
import re

from app.schemas.registration import AuthenticityResult

# Regional identifiers and common business-name tokens (Sri Lankan market)
BUSINESS_NAME_KEYWORDS = (
    "lanka",
    "ceylon",
    "serendib",
    "island",
    "colombo",
    "kandy",
    "galle",
    "jaffna",
    "traders",
    "holdings",
    "enterprises",
    "exports",
    "imports",
    "technologies",
    "solutions",
    "pvt ltd",
    "private limited",
    "group",
    "industries",
    "services",
    "foods",
    "apparels",
    "manufacturing",
)

# Letter block / number / year, e.g. PV/12345/2019
REG_NUMBER_PATTERN = re.compile(r"^[A-Z]{1,4}/\d{1,6}/\d{4}$", re.IGNORECASE)

# (keyword matched, format valid) -> (verified, confidence, reason)
_DECISIONS = {
    (True, True): (True, 0.95, "Organization name and registration number match known business patterns."),
    (True, False): (True, 0.75, "Organization name matches a known business naming style."),
    (False, True): (True, 0.70, "Registration number matches the expected format."),
    (False, False): (False, 0.20, "No known business keywords or valid registration number format found."),
}


def find_keyword(name: str | None) -> str | None:
    if not name:
        return None
    lower = " ".join(name.lower().split())
    for keyword in BUSINESS_NAME_KEYWORDS:
        if keyword in lower:
            return keyword
    return None


def reg_number_format_valid(reg_number: str | None) -> bool:
    if not reg_number:
        return False
    return bool(REG_NUMBER_PATTERN.match(reg_number.strip()))


def score_organization(name: str | None, reg_number: str | None = None) -> AuthenticityResult:
    keyword = find_keyword(name)
    format_ok = reg_number_format_valid(reg_number)
    verified, confidence, reason = _DECISIONS[(keyword is not None, format_ok)]
    return AuthenticityResult(
        matched_keyword=keyword,
        reg_number_format_valid=format_ok,
        confidence=confidence,
        verified=verified,
        reason=reason,
    )
