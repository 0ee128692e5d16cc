"""
Notifier Base Classes
=====================
Contract for out-of-band OTP delivery and a shared HTTP transport base.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..exceptions import DeliveryFailure
from ..phone import mask_phone

logger = structlog.get_logger(__name__)


class MessageStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    REJECTED = "rejected"


@dataclass
class SendResult:
    """Result of a message send operation."""
    success: bool
    provider_message_id: Optional[str] = None
    status: MessageStatus = MessageStatus.PENDING
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None
    segments: int = 1


class Notifier(ABC):
    """
    Sends a short text message to a phone number.

    Delivery is best-effort. Transport errors are raised as DeliveryFailure
    or reported as an unsuccessful SendResult; callers decide whether to
    propagate them.
    """

    name: str = "base"

    async def initialize(self) -> None:
        """Acquire resources (e.g., HTTP clients)."""
        logger.info("Notifier initialized", provider=self.name)

    async def close(self) -> None:
        """Release resources."""
        logger.info("Notifier closed", provider=self.name)

    @abstractmethod
    async def send(self, phone: str, message: str) -> SendResult:
        """
        Send a text message.

        Args:
            phone: Recipient phone number (E.164 format)
            message: Message body

        Returns:
            SendResult with provider response
        """


class HttpNotifier(Notifier):
    """
    Base for HTTP SMS gateways.

    Retries transport-level errors (connect, read timeouts) with
    exponential backoff; every request is bounded by ``timeout``.
    """

    def __init__(
        self,
        sender_id: str = "",
        timeout: float = 10.0,
        max_attempts: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sender_id = sender_id
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    def _client_kwargs(self) -> Dict[str, Any]:
        """Extra httpx.AsyncClient arguments (auth headers, base URL)."""
        return {}

    async def initialize(self) -> None:
        """Create HTTP client."""
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            **self._client_kwargs(),
        )
        await super().initialize()

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
        await super().close()

    async def _ensure_client(self) -> None:
        """Create the client on first use; concurrent first sends share one client."""
        if self._client is not None:
            return
        async with self._client_lock:
            if self._client is None:
                await self.initialize()

    async def _post(self, url: str, data: Dict[str, Any], phone: str) -> httpx.Response:
        await self._ensure_client()

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.2, max=2),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self._client.post(url, data=data)
        except httpx.HTTPError as e:
            logger.error(
                "SMS transport error",
                provider=self.name,
                phone=mask_phone(phone),
                error=str(e),
            )
            raise DeliveryFailure(f"Transport error: {e}", provider=self.name) from e

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
