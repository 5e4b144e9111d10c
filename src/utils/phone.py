"""Mobile phone number helpers (11-digit mainland numbering plan)."""

import re

PHONE_PATTERN = re.compile(r'^1[3-9][0-9]{9}$')


def is_valid_phone(phone: str) -> bool:
    """11 digits, leading 1, second digit 3-9.

    Example:
        is_valid_phone('13800000000') → True
        is_valid_phone('12800000000') → False
    """
    if not isinstance(phone, str):
        return False
    return PHONE_PATTERN.fullmatch(phone) is not None


def default_username(phone: str) -> str:
    return f"user_{phone[-4:]}"


def mask_phone(phone: str) -> str:
    """Hide the middle digits for log output: 138****0000."""
    if len(phone) < 8:
        return '*' * len(phone)
    return f"{phone[:3]}****{phone[-4:]}"
