"""
OTP Issuance and Verification
=============================
Single-use, expiring numeric passcodes bound to a phone number.
"""

from .models import OTPState, OtpRecord
from .generator import generate_code, is_well_formed
from .store import InMemoryOtpStore, OtpStore
from .sql_store import SqlAlchemyOtpStore
from .service import OtpService

__all__ = [
    # Models
    "OTPState",
    "OtpRecord",
    # Generation
    "generate_code",
    "is_well_formed",
    # Stores
    "OtpStore",
    "InMemoryOtpStore",
    "SqlAlchemyOtpStore",
    # Service
    "OtpService",
]
