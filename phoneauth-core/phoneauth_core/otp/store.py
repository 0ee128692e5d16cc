"""
OTP Store
=========
Persistence contract for OTP records and an in-memory implementation.
"""

import asyncio
import hmac
import itertools
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional
import structlog

from ..timeutils import utc_now
from .models import OtpRecord

logger = structlog.get_logger(__name__)


class OtpStore(ABC):
    """
    Abstract OTP persistence.

    Implementations must raise StorageFailure rather than fail silently,
    and must make ``mark_used`` and ``invalidate_active`` atomic
    conditional updates.
    """

    @abstractmethod
    async def create(
        self,
        phone: str,
        code: str,
        expires_at: datetime,
        created_at: Optional[datetime] = None,
    ) -> OtpRecord:
        """Persist a new unused record."""

    @abstractmethod
    async def find_active(self, phone: str, code: str, latest_only: bool = False) -> Optional[OtpRecord]:
        """
        Return the most recently issued unused record matching phone and code.

        With ``latest_only``, only the newest unused record for the phone is
        considered; it is returned if its code matches, otherwise None.
        Expiry may or may not be filtered here; callers re-check it.
        """

    @abstractmethod
    async def mark_used(self, record: OtpRecord) -> bool:
        """
        Flip ``used`` from False to True.

        Returns:
            True only for the single call that performed the transition
        """

    @abstractmethod
    async def invalidate_active(self, phone: str) -> int:
        """Mark every unused record for ``phone`` as used. Returns the count."""

    @abstractmethod
    async def purge_expired(self, before: datetime) -> int:
        """Delete records that expired before ``before``. Returns the count."""


class InMemoryOtpStore(OtpStore):
    """
    Process-local OTP store.

    For development and testing only; records do not survive restarts
    and are not shared between workers.
    """

    def __init__(self):
        self._records: Dict[int, OtpRecord] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def create(
        self,
        phone: str,
        code: str,
        expires_at: datetime,
        created_at: Optional[datetime] = None,
    ) -> OtpRecord:
        async with self._lock:
            record = OtpRecord(
                id=next(self._ids),
                phone=phone,
                code=code,
                expires_at=expires_at,
                created_at=created_at or utc_now(),
            )
            self._records[record.id] = record
        return record

    async def find_active(self, phone: str, code: str, latest_only: bool = False) -> Optional[OtpRecord]:
        async with self._lock:
            candidates = [
                record for record in self._records.values()
                if record.phone == phone and not record.used
            ]
        if latest_only and candidates:
            candidates = [max(candidates, key=lambda r: (r.created_at, r.id))]
        matches = [
            record for record in candidates
            if hmac.compare_digest(record.code.encode(), code.encode())
        ]
        if not matches:
            return None
        return max(matches, key=lambda r: (r.created_at, r.id))

    async def mark_used(self, record: OtpRecord) -> bool:
        async with self._lock:
            current = self._records.get(record.id)
            if current is None or current.used:
                return False
            self._records[record.id] = replace(current, used=True)
            return True

    async def invalidate_active(self, phone: str) -> int:
        async with self._lock:
            active = [r for r in self._records.values() if r.phone == phone and not r.used]
            for record in active:
                self._records[record.id] = replace(record, used=True)
        return len(active)

    async def purge_expired(self, before: datetime) -> int:
        async with self._lock:
            expired = [r.id for r in self._records.values() if r.expires_at < before]
            for record_id in expired:
                del self._records[record_id]
        if expired:
            logger.info("Expired OTP records purged", count=len(expired))
        return len(expired)

    async def get(self, record_id: int) -> Optional[OtpRecord]:
        async with self._lock:
            return self._records.get(record_id)

    async def all_for_phone(self, phone: str) -> List[OtpRecord]:
        async with self._lock:
            return sorted(
                (r for r in self._records.values() if r.phone == phone),
                key=lambda r: r.id,
            )
