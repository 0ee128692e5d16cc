"""
OTP Models
==========
Data models for issued one-time passcodes.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class OTPState(str, Enum):
    """Observable lifecycle state of an OTP record."""
    ACTIVE = "active"
    CONSUMED = "consumed"
    EXPIRED = "expired"


@dataclass(frozen=True)
class OtpRecord:
    """
    An issued OTP.

    Records are immutable snapshots. The ``used`` flag only ever moves
    from False to True, and only inside a store.
    """
    id: int
    phone: str
    code: str
    expires_at: datetime
    created_at: datetime
    used: bool = False

    def is_expired(self, now: datetime) -> bool:
        # Valid strictly before expires_at
        return now >= self.expires_at

    def state(self, now: datetime) -> OTPState:
        if self.used:
            return OTPState.CONSUMED
        if self.is_expired(now):
            return OTPState.EXPIRED
        return OTPState.ACTIVE

    @property
    def ttl_seconds(self) -> float:
        return (self.expires_at - self.created_at).total_seconds()
