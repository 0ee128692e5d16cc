"""
Phone Utilities
===============
Functions for phone number validation, normalization and log masking.
"""

import re

from .exceptions import ValidationError

E164_PATTERN = re.compile(r'^\+[1-9]\d{1,14}$')


def validate_e164(phone: str) -> bool:
    """
    Validate E.164 phone number format.

    Args:
        phone: Phone number

    Returns:
        True if valid E.164 format
    """
    return bool(E164_PATTERN.match(phone))


def normalize_phone(phone: str, default_country: str = "1") -> str:
    """
    Normalize a phone number to E.164 format.

    Args:
        phone: Raw phone number
        default_country: Default country code (without +)

    Returns:
        E.164 formatted number (not guaranteed valid, see require_phone)
    """
    phone = phone.strip()
    digits = re.sub(r'\D', '', phone)

    if phone.startswith('+'):
        return f"+{digits}"

    # International dialing prefix
    if phone.startswith('00'):
        return f"+{digits[2:]}"

    # National number without country code
    if len(digits) == 10:
        return f"+{default_country}{digits}"

    if len(digits) == 11 and digits.startswith(default_country):
        return f"+{digits}"

    return f"+{digits}"


def require_phone(phone: str, default_country: str = "1") -> str:
    """
    Normalize and validate a phone number.

    Raises:
        ValidationError: If the number is empty or not valid E.164 after normalization
    """
    if not isinstance(phone, str) or not phone.strip():
        raise ValidationError("Phone number is required.")

    normalized = normalize_phone(phone, default_country)
    if not validate_e164(normalized):
        raise ValidationError("Invalid phone number.", details={"phone": mask_phone(phone)})
    return normalized


def mask_phone(phone: str, visible: int = 4) -> str:
    """Mask all but the last few digits, e.g. +1******4567."""
    if not phone:
        return ""
    prefix = "+" if phone.startswith("+") else ""
    digits = re.sub(r'\D', '', phone)
    if len(digits) <= visible:
        return prefix + "*" * len(digits)
    return prefix + digits[:1] + "*" * (len(digits) - visible - 1) + digits[-visible:]
