"""
OTP Code Generation
===================
Cryptographically strong numeric codes.
"""

import secrets


def generate_code(digits: int = 6) -> str:
    """
    Generate a zero-padded numeric OTP.

    The value is uniform over [0, 10**digits), so codes such as "000042"
    are as likely as any other.

    Args:
        digits: Number of digits

    Returns:
        Code string of exactly ``digits`` characters
    """
    if digits < 1:
        raise ValueError("digits must be at least 1")
    return str(secrets.randbelow(10 ** digits)).zfill(digits)


def is_well_formed(code: str, digits: int) -> bool:
    """Check a submitted code has the configured shape (ASCII digits, exact length)."""
    return (
        isinstance(code, str)
        and len(code) == digits
        and all(ch in "0123456789" for ch in code)
    )
