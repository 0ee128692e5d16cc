"""
Twilio Notifier
===============
Sends OTP messages through the Twilio Messages API.
"""

from base64 import b64encode
from typing import Any, Dict, Optional
import httpx
import structlog

from ..phone import mask_phone
from .base import HttpNotifier, MessageStatus, SendResult

logger = structlog.get_logger(__name__)


class TwilioNotifier(HttpNotifier):
    """Twilio SMS notifier."""

    name = "twilio"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        sender_id: str = "",
        messaging_service_sid: Optional[str] = None,
        timeout: float = 10.0,
        max_attempts: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(sender_id, timeout, max_attempts, transport)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.messaging_service_sid = messaging_service_sid
        self.base_url = f"https://api.twilio.com/2010-04-01/Accounts/{account_sid}"

    def _client_kwargs(self) -> Dict[str, Any]:
        auth = b64encode(f"{self.account_sid}:{self.auth_token}".encode()).decode()
        return {"headers": {"Authorization": f"Basic {auth}"}}

    async def send(self, phone: str, message: str) -> SendResult:
        """Send SMS via Twilio."""
        payload = {
            "To": phone,
            "Body": message,
        }
        if self.messaging_service_sid:
            payload["MessagingServiceSid"] = self.messaging_service_sid
        else:
            payload["From"] = self.sender_id

        response = await self._post(f"{self.base_url}/Messages.json", payload, phone)
        data = self._json(response)

        if response.status_code == 201:
            return SendResult(
                success=True,
                provider_message_id=data.get("sid"),
                status=self._map_status(data.get("status", "")),
                raw_response=data,
                segments=int(data.get("num_segments") or 1),
            )

        logger.warning(
            "Twilio rejected message",
            phone=mask_phone(phone),
            status_code=response.status_code,
            error_code=data.get("code"),
        )
        return SendResult(
            success=False,
            status=MessageStatus.FAILED,
            error_code=str(data.get("code", response.status_code)),
            error_message=data.get("message", "Unknown error"),
            raw_response=data,
        )

    def _map_status(self, twilio_status: str) -> MessageStatus:
        """Map Twilio status to internal status."""
        mapping = {
            "accepted": MessageStatus.PENDING,
            "queued": MessageStatus.PENDING,
            "sending": MessageStatus.PENDING,
            "sent": MessageStatus.SENT,
            "delivered": MessageStatus.DELIVERED,
            "undelivered": MessageStatus.FAILED,
            "failed": MessageStatus.FAILED,
        }
        return mapping.get(twilio_status.lower(), MessageStatus.PENDING)
