"""Phone number normalisation used as the join key between leads and orders."""
from __future__ import annotations

import math
import re
from typing import Any

_COUNTRY_CODE_WITH_TRUNK = "880"
_COUNTRY_CODE = "88"
_INTEGRAL_DECIMAL = re.compile(r"^\d+\.0+$")


def _as_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, float):
        if math.isnan(raw):
            return ""
        if raw.is_integer():
            return str(int(raw))
    text = str(raw).strip()
    if _INTEGRAL_DECIMAL.match(text):
        return text.split(".", 1)[0]
    return text


def normalize_phone(raw: Any) -> str:
    """Return the canonical 11 digit form of ``raw`` or ``""`` when unusable.

    Spreadsheet cells frequently arrive as floats (``1712345678.0``), so
    integral floats and their string forms lose the fractional part before
    the digits are extracted.
    """

    digits = "".join(char for char in _as_text(raw) if char.isdigit())
    if digits.startswith(_COUNTRY_CODE_WITH_TRUNK):
        digits = digits[3:]
    elif digits.startswith(_COUNTRY_CODE):
        digits = digits[2:]

    if len(digits) == 10:
        digits = f"0{digits}"
    if len(digits) == 11 and digits.startswith("0"):
        return digits
    return digits if len(digits) >= 10 else ""


def is_valid_phone(raw: Any) -> bool:
    return bool(normalize_phone(raw))


__all__ = ["normalize_phone", "is_valid_phone"]
