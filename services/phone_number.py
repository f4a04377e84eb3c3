"""
Phone number canonicalization.

Best-effort rules, no carrier validation:
- `+` prefixed international numbers with 8-15 digits
- US local 10-digit numbers become +1XXXXXXXXXX
- US 11-digit numbers starting with 1 become +1XXXXXXXXXX
- a leading `00` international prefix is treated as `+`
"""
import re
from typing import Optional

_NON_PHONE_CHARS = re.compile(r"[^\d+]")
_NON_DIGITS = re.compile(r"\D")
_INTERNATIONAL_DIGITS = re.compile(r"^[1-9]\d{7,14}$")


def normalize(value: Optional[str]) -> Optional[str]:
    """Return the E.164 form of `value`, or None if it cannot be normalized."""
    if not isinstance(value, str):
        return None

    sanitized = _NON_PHONE_CHARS.sub("", value.strip())
    if not sanitized:
        return None

    if sanitized.startswith("00"):
        sanitized = "+" + sanitized[2:]

    if "+" in sanitized[1:]:
        return None

    if not sanitized.startswith("+"):
        digits = _NON_DIGITS.sub("", sanitized)
        if len(digits) == 10:
            return "+1" + digits
        if len(digits) == 11 and digits.startswith("1"):
            return "+" + digits
        return None

    digits = sanitized[1:]
    if not _INTERNATIONAL_DIGITS.match(digits):
        return None

    return "+" + digits


def mask(e164: Optional[str]) -> Optional[str]:
    """Display form: country digits, six bullets, last four digits."""
    if not e164:
        return None

    digits = _NON_DIGITS.sub("", e164)
    if len(digits) < 4:
        return None

    country_length = max(len(digits) - 10, 1)
    return f"+{digits[:country_length]}••••••{digits[-4:]}"
