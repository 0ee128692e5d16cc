"""
OTP Service
===========
Issuance and verification of phone OTPs.

Record lifecycle:
    ACTIVE --verify--> CONSUMED
    ACTIVE --reissue (invalidate policy)--> CONSUMED
    ACTIVE --expires_at passes--> EXPIRED

CONSUMED and EXPIRED are terminal and indistinguishable to callers.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional
import structlog

from ..config import OTPConfig, ReissuePolicy
from ..exceptions import DeliveryFailure
from ..notifier.base import Notifier
from ..phone import mask_phone
from ..timeutils import utc_now
from .generator import generate_code
from .models import OtpRecord
from .store import OtpStore

logger = structlog.get_logger(__name__)


class OtpService:
    """Sole owner of OTP issuance and verification semantics."""

    def __init__(
        self,
        store: OtpStore,
        notifier: Notifier,
        config: Optional[OTPConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.notifier = notifier
        self.config = config or OTPConfig()
        self._clock = clock

    async def generate(self, phone: str) -> OtpRecord:
        """
        Issue a new OTP for a phone number and attempt delivery.

        Delivery failures are logged and do not fail generation; the stored
        record stays verifiable. Storage failures propagate.

        Args:
            phone: Phone number (validated upstream)

        Returns:
            The persisted record
        """
        now = self._clock()
        code = generate_code(self.config.otp_length)
        expires_at = now + timedelta(minutes=self.config.otp_expiry)

        if self.config.reissue_policy is ReissuePolicy.INVALIDATE:
            invalidated = await self.store.invalidate_active(phone)
            if invalidated:
                logger.info(
                    "Previous OTPs invalidated",
                    phone=mask_phone(phone),
                    count=invalidated,
                )

        record = await self.store.create(phone, code, expires_at, created_at=now)
        logger.info(
            "OTP issued",
            phone=mask_phone(phone),
            record_id=record.id,
            expires_at=record.expires_at.isoformat(),
        )

        await self._deliver(record)

        if self.config.log_codes:
            logger.info(
                "Development OTP",
                phone=phone,
                code=code,
                environment=self.config.environment,
            )

        return record

    async def _deliver(self, record: OtpRecord) -> bool:
        message = self.config.render_message(record.code)
        try:
            result = await asyncio.wait_for(
                self.notifier.send(record.phone, message),
                timeout=self.config.delivery_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Failed to send OTP",
                phone=mask_phone(record.phone),
                record_id=record.id,
                provider=self.notifier.name,
                error="timeout",
                timeout=self.config.delivery_timeout,
            )
            return False
        except DeliveryFailure as e:
            logger.error(
                "Failed to send OTP",
                phone=mask_phone(record.phone),
                record_id=record.id,
                provider=e.provider,
                error=e.message,
            )
            return False
        except Exception:
            logger.exception(
                "Failed to send OTP",
                phone=mask_phone(record.phone),
                record_id=record.id,
                provider=self.notifier.name,
            )
            return False

        if not result.success:
            logger.error(
                "Failed to send OTP",
                phone=mask_phone(record.phone),
                record_id=record.id,
                provider=self.notifier.name,
                error_code=result.error_code,
                error=result.error_message,
            )
            return False

        logger.info(
            "OTP delivered",
            phone=mask_phone(record.phone),
            record_id=record.id,
            provider=self.notifier.name,
            provider_message_id=result.provider_message_id,
        )
        return True

    async def verify(self, phone: str, code: str) -> bool:
        """
        Verify and consume an OTP.

        Returns:
            True exactly once per issued record. False for an unknown phone,
            wrong code, expired or already used record, with no distinction.
        """
        # Concurrent generate calls can each land a record before the other's
        # invalidation, so under the invalidate policy only the newest counts
        latest_only = self.config.reissue_policy is ReissuePolicy.INVALIDATE
        record = await self.store.find_active(phone, code, latest_only=latest_only)
        if record is None:
            return self._reject(phone, "no_match")

        if record.is_expired(self._clock()):
            return self._reject(phone, "expired", record.id)

        # Atomic compare-and-set; a concurrent verifier may have won
        if not await self.store.mark_used(record):
            return self._reject(phone, "already_used", record.id)

        logger.info("OTP verified", phone=mask_phone(phone), record_id=record.id)
        return True

    def _reject(self, phone: str, reason: str, record_id: Optional[int] = None) -> bool:
        logger.warning(
            "OTP verification failed",
            phone=mask_phone(phone),
            reason=reason,
            record_id=record_id,
        )
        return False
