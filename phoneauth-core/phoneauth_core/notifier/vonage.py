"""
Vonage Notifier
===============
Sends OTP messages through the Vonage (Nexmo) SMS API.
"""

from typing import Optional
import httpx
import structlog

from ..phone import mask_phone
from .base import HttpNotifier, MessageStatus, SendResult

logger = structlog.get_logger(__name__)


class VonageNotifier(HttpNotifier):
    """Vonage SMS notifier."""

    name = "vonage"
    base_url = "https://rest.nexmo.com"

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        sender_id: str = "",
        timeout: float = 10.0,
        max_attempts: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(sender_id, timeout, max_attempts, transport)
        self.api_key = api_key
        self.api_secret = api_secret

    async def send(self, phone: str, message: str) -> SendResult:
        """Send SMS via Vonage."""
        # Vonage expects numbers without the leading +
        payload = {
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "to": phone.lstrip("+"),
            "from": self.sender_id.lstrip("+"),
            "text": message,
            "type": "unicode" if any(ord(c) > 127 for c in message) else "text",
        }

        response = await self._post(f"{self.base_url}/sms/json", payload, phone)
        data = self._json(response)
        messages = data.get("messages") or []

        if response.status_code == 200 and messages and messages[0].get("status") == "0":
            msg = messages[0]
            return SendResult(
                success=True,
                provider_message_id=msg.get("message-id"),
                status=MessageStatus.SENT,
                raw_response=data,
                segments=int(data.get("message-count") or 1),
            )

        error = messages[0] if messages else {}
        logger.warning(
            "Vonage rejected message",
            phone=mask_phone(phone),
            status_code=response.status_code,
            error_code=error.get("status"),
        )
        return SendResult(
            success=False,
            status=MessageStatus.FAILED,
            error_code=error.get("status", str(response.status_code)),
            error_message=error.get("error-text", "Unknown error"),
            raw_response=data,
        )
