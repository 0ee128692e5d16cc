"""
Shared fixtures for phoneauth-core tests.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

import pytest

from phoneauth_core.config import OTPConfig
from phoneauth_core.exceptions import DeliveryFailure
from phoneauth_core.notifier.base import MessageStatus, Notifier, SendResult
from phoneauth_core.otp.service import OtpService
from phoneauth_core.otp.store import InMemoryOtpStore


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier(Notifier):
    """Keeps every message it is asked to send."""

    name = "recording"

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    async def send(self, phone: str, message: str) -> SendResult:
        self.sent.append((phone, message))
        return SendResult(success=True, provider_message_id=f"msg-{len(self.sent)}", status=MessageStatus.SENT)


class FailingNotifier(Notifier):
    """Always raises DeliveryFailure."""

    name = "failing"

    def __init__(self):
        self.calls = 0

    async def send(self, phone: str, message: str) -> SendResult:
        self.calls += 1
        raise DeliveryFailure("gateway down", provider=self.name)


class RejectingNotifier(Notifier):
    """Reports an unsuccessful send without raising."""

    name = "rejecting"

    async def send(self, phone: str, message: str) -> SendResult:
        return SendResult(success=False, status=MessageStatus.REJECTED, error_code="21610", error_message="Unsubscribed")


class HangingNotifier(Notifier):
    """Never completes within any reasonable timeout."""

    name = "hanging"

    async def send(self, phone: str, message: str) -> SendResult:
        await asyncio.sleep(3600)
        return SendResult(success=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def otp_config() -> OTPConfig:
    return OTPConfig(otp_length=6, otp_expiry=5, environment="testing")


@pytest.fixture
def store() -> InMemoryOtpStore:
    return InMemoryOtpStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(store, notifier, otp_config, clock) -> OtpService:
    return OtpService(store, notifier, otp_config, clock=clock)
