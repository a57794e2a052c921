from __future__ import annotations

import re
from typing import Optional

_SEPARATORS = re.compile(r"[\s\-().]")
_DIGITS = re.compile(r"^\d+$")


def normalize_mobile(raw: Optional[str], *, default_country_code: str = "91") -> Optional[str]:
    """
    Canonical E.164 form ("+<country><number>") or None if malformed.

    Accepts "+CC...", "00CC..." and bare national 10-digit numbers, which get
    ``default_country_code`` prefixed.
    """
    value = _SEPARATORS.sub("", (raw or "").strip())
    if not value:
        return None

    if value.startswith("+"):
        digits = value[1:]
    elif value.startswith("00"):
        digits = value[2:]
    elif len(value) == 10 and default_country_code:
        digits = f"{default_country_code}{value}"
    elif len(value) == 11 and value.startswith("0") and default_country_code:
        # Trunk prefix, e.g. 09876543210
        digits = f"{default_country_code}{value[1:]}"
    else:
        digits = value

    if not _DIGITS.match(digits) or digits.startswith("0"):
        return None
    if not 8 <= len(digits) <= 15:
        return None
    return f"+{digits}"


def mask_mobile(mobile: str) -> str:
    """For log lines: keep the first 5 and last 3 characters."""
    if len(mobile) <= 8:
        return "*" * len(mobile)
    return f"{mobile[:5]}{'*' * (len(mobile) - 8)}{mobile[-3:]}"
