"""
Phone number normalization for contact comparison.

A best-effort canonicalizer, not a validator: malformed numbers pass through
with only punctuation removed.
"""
import re

_PUNCTUATION = re.compile(r"[\s\-()]")


def normalize_phone(phone: str, country_code: str = "62") -> str:
    """
    Canonicalize a phone number to its domestic leading-zero form.

    Examples (country_code="62"):
        "+62 813-700-111" -> "0813700111"
        "62813700111"     -> "0813700111"
        "0813700111"      -> "0813700111"

    The bare country-code form is only rewritten when the cleaned string is
    longer than 10 characters, so short local numbers starting with the same
    digits are left alone.
    """
    normalized = _PUNCTUATION.sub("", phone)

    if normalized.startswith(f"+{country_code}"):
        return "0" + normalized[len(country_code) + 1:]
    if normalized.startswith(country_code) and len(normalized) > 10:
        return "0" + normalized[len(country_code):]
    return normalized
