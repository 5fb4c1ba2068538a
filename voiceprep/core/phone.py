"""
Phone number helpers for Korean mobile numbers (010-XXXX-XXXX).
"""

import re

MAX_PHONE_DIGITS = 11

_NON_DIGITS = re.compile(r"\D")


def normalize_phone_number(phone: str) -> str:
    """Strip everything except digits."""
    return _NON_DIGITS.sub("", phone or "")


def format_phone_number(phone: str) -> str:
    """
    Format a number with hyphens as it is typed.

    Partial input is formatted progressively ("010", "010-1234",
    "010-1234-5678"); digits beyond the eleventh are dropped.
    """
    digits = normalize_phone_number(phone)[:MAX_PHONE_DIGITS]
    if len(digits) <= 3:
        return digits
    if len(digits) <= 7:
        return f"{digits[:3]}-{digits[3:]}"
    return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"


def is_valid_phone_number(phone: str) -> bool:
    """True for exactly 11 digits starting with 010."""
    digits = normalize_phone_number(phone)
    return len(digits) == MAX_PHONE_DIGITS and digits.startswith("010")
