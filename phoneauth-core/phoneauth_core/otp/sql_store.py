"""
SQL OTP Store
=============
Async SQLAlchemy implementation of the OTP store.

Consumption and invalidation are single conditional UPDATE statements,
so concurrent verifications of one record cannot both succeed.
"""

import hmac
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from ..exceptions import StorageFailure
from ..tables import OtpRecordRow
from ..timeutils import as_utc, utc_now
from .models import OtpRecord
from .store import OtpStore

logger = structlog.get_logger(__name__)


def _to_record(row: OtpRecordRow) -> OtpRecord:
    return OtpRecord(
        id=row.id,
        phone=row.phone,
        code=row.code,
        expires_at=as_utc(row.expires_at),
        created_at=as_utc(row.created_at),
        used=bool(row.used),
    )


class SqlAlchemyOtpStore(OtpStore):
    """OTP store over an async session factory. Each call runs in its own transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error("OTP store operation failed", operation=operation, error=str(e))
            raise StorageFailure(
                f"OTP store {operation} failed",
                operation=operation,
                details=str(e),
            ) from e

    async def create(
        self,
        phone: str,
        code: str,
        expires_at: datetime,
        created_at: Optional[datetime] = None,
    ) -> OtpRecord:
        async with self._transaction("create") as session:
            row = OtpRecordRow(
                phone=phone,
                code=code,
                expires_at=expires_at,
                created_at=created_at or utc_now(),
                used=False,
            )
            session.add(row)
            await session.flush()
            record = _to_record(row)
        return record

    async def find_active(self, phone: str, code: str, latest_only: bool = False) -> Optional[OtpRecord]:
        conditions = [OtpRecordRow.phone == phone, OtpRecordRow.used.is_(False)]
        if not latest_only:
            conditions.append(OtpRecordRow.code == code)
        stmt = (
            select(OtpRecordRow)
            .where(*conditions)
            .order_by(OtpRecordRow.created_at.desc(), OtpRecordRow.id.desc())
            .limit(1)
        )
        async with self._transaction("find_active") as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            record = _to_record(row) if row is not None else None
        if record is None:
            return None
        # Newest unused record wins; an older one with the same code is ignored
        if latest_only and not hmac.compare_digest(record.code.encode(), code.encode()):
            return None
        return record

    async def mark_used(self, record: OtpRecord) -> bool:
        stmt = (
            update(OtpRecordRow)
            .where(OtpRecordRow.id == record.id, OtpRecordRow.used.is_(False))
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        async with self._transaction("mark_used") as session:
            result = await session.execute(stmt)
            count = int(result.rowcount or 0)
        return count == 1

    async def invalidate_active(self, phone: str) -> int:
        stmt = (
            update(OtpRecordRow)
            .where(OtpRecordRow.phone == phone, OtpRecordRow.used.is_(False))
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        async with self._transaction("invalidate_active") as session:
            result = await session.execute(stmt)
            count = int(result.rowcount or 0)
        return count

    async def purge_expired(self, before: datetime) -> int:
        stmt = (
            delete(OtpRecordRow)
            .where(OtpRecordRow.expires_at < before)
            .execution_options(synchronize_session=False)
        )
        async with self._transaction("purge_expired") as session:
            result = await session.execute(stmt)
            count = int(result.rowcount or 0)
        if count:
            logger.info("Expired OTP records purged", count=count)
        return count
