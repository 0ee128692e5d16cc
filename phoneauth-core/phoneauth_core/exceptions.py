"""
Phone Auth Exceptions
=====================
Error taxonomy shared by the OTP core and the auth flow.
"""

from typing import Any, Optional


class PhoneAuthError(Exception):
    """Base exception for all phone auth errors."""

    def __init__(self, message: str, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(PhoneAuthError):
    """Raised when configuration values are missing or invalid."""
    pass


class ValidationError(PhoneAuthError):
    """Raised when request input is malformed (phone, code, names)."""
    pass


class NotFoundOrInvalid(PhoneAuthError):
    """
    Uniform negative OTP verification result.

    Covers missing record, wrong code, expired and already-used codes.
    The specific reason is never exposed to the caller.
    """

    def __init__(self, message: str = "Invalid or expired OTP.", details: Any = None):
        super().__init__(message, details)


class InvalidOtpError(NotFoundOrInvalid):
    """Raised by the auth flow when a submitted code does not verify."""
    pass


class DeliveryFailure(PhoneAuthError):
    """Raised by notifiers when a message could not be handed to the transport."""

    def __init__(self, message: str, provider: str = "unknown", details: Any = None):
        self.provider = provider
        super().__init__(f"[{provider}] {message}", details)


class StorageFailure(PhoneAuthError):
    """Raised when the OTP or customer store is unavailable. Always propagates."""

    def __init__(self, message: str, operation: Optional[str] = None, details: Any = None):
        self.operation = operation
        super().__init__(message, details)


class CustomerNotFoundError(PhoneAuthError):
    """Raised when no customer exists for a phone number."""

    def __init__(self, message: str = "Customer not found.", details: Any = None):
        super().__init__(message, details)


class AuthenticationError(PhoneAuthError):
    """Raised when a bearer credential is missing, invalid, expired or revoked."""

    def __init__(self, message: str = "Unauthenticated.", details: Any = None):
        super().__init__(message, details)


class PhoneNotVerifiedError(PhoneAuthError):
    """Raised when an authenticated customer has not verified their phone."""

    def __init__(self, message: str = "Phone number not verified.", details: Any = None):
        super().__init__(message, details)
