from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from ..exceptions import StorageFailure, ValidationError
from ..tables import CustomerRow
from ..timeutils import as_utc, utc_now
from .models import Customer
from .repository import CustomerRepository

logger = structlog.get_logger(__name__)


def _to_customer(row: CustomerRow) -> Customer:
    return Customer(
        id=row.id,
        phone=row.phone,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        phone_verified=bool(row.phone_verified),
        phone_verified_at=as_utc(row.phone_verified_at),
        created_at=as_utc(row.created_at),
    )


class SqlAlchemyCustomerRepository(CustomerRepository):
    """Customer repository over an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError as e:
            # Unique phone constraint
            raise ValidationError("Phone number already registered.") from e
        except SQLAlchemyError as e:
            logger.error("Customer store operation failed", operation=operation, error=str(e))
            raise StorageFailure(
                f"Customer store {operation} failed",
                operation=operation,
                details=str(e),
            ) from e

    async def get(self, customer_id: int) -> Optional[Customer]:
        async with self._transaction("get") as session:
            row = await session.get(CustomerRow, customer_id)
            customer = _to_customer(row) if row is not None else None
        return customer

    async def find_by_phone(self, phone: str) -> Optional[Customer]:
        stmt = select(CustomerRow).where(CustomerRow.phone == phone)
        async with self._transaction("find_by_phone") as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            customer = _to_customer(row) if row is not None else None
        return customer

    async def create(self, phone: str, first_name: str = "", last_name: str = "") -> Customer:
        async with self._transaction("create") as session:
            row = CustomerRow(
                phone=phone,
                first_name=first_name,
                last_name=last_name,
                phone_verified=False,
                created_at=utc_now(),
            )
            session.add(row)
            await session.flush()
            customer = _to_customer(row)
        return customer

    async def mark_phone_verified(self, phone: str, at: datetime) -> Optional[Customer]:
        stmt = (
            update(CustomerRow)
            .where(CustomerRow.phone == phone)
            .values(phone_verified=True, phone_verified_at=at)
            .execution_options(synchronize_session=False)
        )
        async with self._transaction("mark_phone_verified") as session:
            result = await session.execute(stmt)
            if not result.rowcount:
                return None
            row = (
                await session.execute(select(CustomerRow).where(CustomerRow.phone == phone))
            ).scalar_one()
            customer = _to_customer(row)
        return customer
