"""Indian mobile number normalization.

Both the ban check and the stored record go through ``canonical_phone`` so
a banned number cannot slip past the gate in a different spelling.
"""

import re

COUNTRY_CODE = "91"
LOCAL_DIGITS = 10

_NON_DIGIT_RE = re.compile(r"[^0-9]")


def phone_digits(raw: str) -> str:
    """Strip everything but ASCII digits."""
    return _NON_DIGIT_RE.sub("", raw or "")


def canonical_phone(raw: str) -> str | None:
    """Return the ``+91XXXXXXXXXX`` form of *raw*, or None if there is none.

    Accepts a bare 10-digit local number, or a 12/13-digit string that
    already carries the ``91`` country code.
    """
    digits = phone_digits(raw)
    if len(digits) == LOCAL_DIGITS:
        return f"+{COUNTRY_CODE}{digits}"
    if len(digits) in (12, 13) and digits.startswith(COUNTRY_CODE):
        return f"+{digits}"
    return None


def normalize_phone(raw: str) -> str:
    """Canonical form for storage; the input is returned as-is when none applies."""
    canonical = canonical_phone(raw)
    return canonical if canonical is not None else raw
