"""
OTP Notifiers
=============
Delivery channels for one-time passcodes.
"""

from .base import HttpNotifier, MessageStatus, Notifier, SendResult
from .factory import build_notifier
from .log import LogNotifier
from .twilio import TwilioNotifier
from .vonage import VonageNotifier

__all__ = [
    "Notifier",
    "HttpNotifier",
    "SendResult",
    "MessageStatus",
    "LogNotifier",
    "TwilioNotifier",
    "VonageNotifier",
    "build_notifier",
]
