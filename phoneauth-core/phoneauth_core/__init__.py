"""
Phone Auth Core Library
=======================
Phone-number OTP authentication: issuance, delivery, single-use
verification and credential issuance.
"""

__version__ = "0.1.0"

# Configuration
from phoneauth_core.config import (
    OTPConfig,
    NotifierConfig,
    TokenConfig,
    ReissuePolicy,
    NotifierProvider,
)

# Errors
from phoneauth_core.exceptions import (
    PhoneAuthError,
    ConfigurationError,
    ValidationError,
    NotFoundOrInvalid,
    InvalidOtpError,
    DeliveryFailure,
    StorageFailure,
    CustomerNotFoundError,
    AuthenticationError,
    PhoneNotVerifiedError,
)

# OTP
from phoneauth_core.otp import (
    OtpRecord,
    OTPState,
    OtpStore,
    InMemoryOtpStore,
    SqlAlchemyOtpStore,
    OtpService,
    generate_code,
)

# Notifiers
from phoneauth_core.notifier import (
    Notifier,
    SendResult,
    MessageStatus,
    LogNotifier,
    TwilioNotifier,
    VonageNotifier,
    build_notifier,
)

# Customers
from phoneauth_core.customers import (
    Customer,
    CustomerRepository,
    InMemoryCustomerRepository,
    SqlAlchemyCustomerRepository,
)

# Credentials
from phoneauth_core.credentials import CredentialIssuer, SignedTokenIssuer

# Flow
from phoneauth_core.auth_flow import AuthFlow, AuthResult

# Phone
from phoneauth_core.phone import normalize_phone, validate_e164, require_phone, mask_phone

__all__ = [
    # Config
    "OTPConfig",
    "NotifierConfig",
    "TokenConfig",
    "ReissuePolicy",
    "NotifierProvider",
    # Errors
    "PhoneAuthError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundOrInvalid",
    "InvalidOtpError",
    "DeliveryFailure",
    "StorageFailure",
    "CustomerNotFoundError",
    "AuthenticationError",
    "PhoneNotVerifiedError",
    # OTP
    "OtpRecord",
    "OTPState",
    "OtpStore",
    "InMemoryOtpStore",
    "SqlAlchemyOtpStore",
    "OtpService",
    "generate_code",
    # Notifiers
    "Notifier",
    "SendResult",
    "MessageStatus",
    "LogNotifier",
    "TwilioNotifier",
    "VonageNotifier",
    "build_notifier",
    # Customers
    "Customer",
    "CustomerRepository",
    "InMemoryCustomerRepository",
    "SqlAlchemyCustomerRepository",
    # Credentials
    "CredentialIssuer",
    "SignedTokenIssuer",
    # Flow
    "AuthFlow",
    "AuthResult",
    # Phone
    "normalize_phone",
    "validate_e164",
    "require_phone",
    "mask_phone",
]
