"""
Log Notifier
============
Writes messages to the log instead of sending them. Development only.
"""

import uuid
import structlog

from .base import MessageStatus, Notifier, SendResult

logger = structlog.get_logger(__name__)


class LogNotifier(Notifier):
    """Notifier that logs the message body. Never use in production."""

    name = "log"

    async def send(self, phone: str, message: str) -> SendResult:
        message_id = f"log-{uuid.uuid4().hex[:12]}"
        logger.info("SMS message (not sent)", phone=phone, body=message, message_id=message_id)
        return SendResult(
            success=True,
            provider_message_id=message_id,
            status=MessageStatus.SENT,
        )
