"""
Tests for the SQLAlchemy stores against a SQLite database.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from phoneauth_core.customers import SqlAlchemyCustomerRepository
from phoneauth_core.database import close_engine, create_async_engine, create_session_factory, create_tables
from phoneauth_core.exceptions import StorageFailure, ValidationError
from phoneauth_core.otp import OtpService, SqlAlchemyOtpStore

from conftest import RecordingNotifier

PHONE = "+15551234567"


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'phoneauth.db'}")
    await create_tables(engine)
    yield engine
    await close_engine()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def sql_store(session_factory):
    return SqlAlchemyOtpStore(session_factory)


class TestSqlAlchemyOtpStore:

    @pytest.mark.asyncio
    async def test_create_and_find(self, sql_store, clock):
        """Should round-trip records with timezone-aware timestamps."""
        created = await sql_store.create(PHONE, "012345", clock.now + timedelta(minutes=5), created_at=clock.now)

        found = await sql_store.find_active(PHONE, "012345")

        assert found == created
        assert found.code == "012345"
        assert found.expires_at == clock.now + timedelta(minutes=5)
        assert found.expires_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_find_requires_exact_match(self, sql_store, clock):
        await sql_store.create(PHONE, "123456", clock.now + timedelta(minutes=5), created_at=clock.now)

        assert await sql_store.find_active(PHONE, "654321") is None
        assert await sql_store.find_active("+15550000000", "123456") is None

    @pytest.mark.asyncio
    async def test_find_returns_newest(self, sql_store, clock):
        first = await sql_store.create(PHONE, "123456", clock.now + timedelta(minutes=5), created_at=clock.now)
        second = await sql_store.create(
            PHONE, "123456", clock.now + timedelta(minutes=6), created_at=clock.now + timedelta(minutes=1),
        )

        found = await sql_store.find_active(PHONE, "123456")

        assert found.id == second.id
        assert found.id != first.id

    @pytest.mark.asyncio
    async def test_find_latest_only(self, sql_store, clock):
        """Only the newest unused record for the phone may match."""
        expires = clock.now + timedelta(minutes=5)
        await sql_store.create(PHONE, "111111", expires, created_at=clock.now)
        newest = await sql_store.create(PHONE, "222222", expires, created_at=clock.now)

        assert await sql_store.find_active(PHONE, "111111", latest_only=True) is None
        assert await sql_store.find_active(PHONE, "222222", latest_only=True) == newest
        assert (await sql_store.find_active(PHONE, "111111")).code == "111111"

    @pytest.mark.asyncio
    async def test_mark_used_once(self, sql_store, clock):
        """Only the first compare-and-set should win."""
        record = await sql_store.create(PHONE, "123456", clock.now + timedelta(minutes=5), created_at=clock.now)

        assert await sql_store.mark_used(record) is True
        assert await sql_store.mark_used(record) is False
        assert await sql_store.find_active(PHONE, "123456") is None

    @pytest.mark.asyncio
    async def test_invalidate_active(self, sql_store, clock):
        expires = clock.now + timedelta(minutes=5)
        await sql_store.create(PHONE, "111111", expires, created_at=clock.now)
        await sql_store.create(PHONE, "222222", expires, created_at=clock.now)
        other = await sql_store.create("+15550000000", "333333", expires, created_at=clock.now)

        assert await sql_store.invalidate_active(PHONE) == 2
        assert await sql_store.invalidate_active(PHONE) == 0
        assert await sql_store.find_active(PHONE, "111111") is None
        assert await sql_store.find_active(other.phone, "333333") == other

    @pytest.mark.asyncio
    async def test_purge_expired(self, sql_store, clock):
        await sql_store.create(PHONE, "111111", clock.now - timedelta(minutes=1), created_at=clock.now - timedelta(minutes=6))
        kept = await sql_store.create(PHONE, "222222", clock.now + timedelta(minutes=5), created_at=clock.now)

        assert await sql_store.purge_expired(clock.now) == 1
        assert await sql_store.find_active(PHONE, "111111") is None
        assert await sql_store.find_active(PHONE, "222222") == kept

    @pytest.mark.asyncio
    async def test_concurrent_verifications(self, sql_store, otp_config, clock):
        """Parallel verifications of one code should succeed exactly once."""
        service = OtpService(sql_store, RecordingNotifier(), otp_config, clock=clock)
        record = await service.generate(PHONE)

        results = await asyncio.gather(*(service.verify(PHONE, record.code) for _ in range(5)))

        assert results.count(True) == 1

    @pytest.mark.asyncio
    async def test_missing_tables_raise_storage_failure(self, tmp_path):
        """Backend errors should surface as StorageFailure."""
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        store = SqlAlchemyOtpStore(create_session_factory(engine))

        try:
            with pytest.raises(StorageFailure) as exc_info:
                await store.find_active(PHONE, "123456")
        finally:
            await close_engine()

        assert exc_info.value.operation == "find_active"


class TestSqlAlchemyCustomerRepository:

    @pytest.mark.asyncio
    async def test_create_and_lookup(self, session_factory):
        repo = SqlAlchemyCustomerRepository(session_factory)

        customer = await repo.create(PHONE, first_name="Ada", last_name="Lovelace")

        assert customer.phone_verified is False
        assert await repo.get(customer.id) == customer
        assert await repo.find_by_phone(PHONE) == customer
        assert await repo.find_by_phone("+15550000000") is None

    @pytest.mark.asyncio
    async def test_duplicate_phone(self, session_factory):
        repo = SqlAlchemyCustomerRepository(session_factory)
        await repo.create(PHONE)

        with pytest.raises(ValidationError):
            await repo.create(PHONE)

    @pytest.mark.asyncio
    async def test_mark_phone_verified(self, session_factory, clock):
        repo = SqlAlchemyCustomerRepository(session_factory)
        await repo.create(PHONE)

        customer = await repo.mark_phone_verified(PHONE, clock.now)

        assert customer.phone_verified is True
        assert customer.phone_verified_at == clock.now
        assert await repo.mark_phone_verified("+15550000000", clock.now) is None


class TestEngineHelpers:

    @pytest.mark.asyncio
    async def test_session_factory_lifecycle(self, tmp_path):
        """Module-level factory is available until the engine is closed."""
        from phoneauth_core.database import get_engine, get_session_factory

        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'global.db'}")
        await create_tables()
        store = SqlAlchemyOtpStore(get_session_factory())

        assert get_engine() is engine
        record = await store.create(PHONE, "123456", datetime(2030, 1, 1, tzinfo=timezone.utc))
        assert await store.find_active(PHONE, "123456") == record

        await close_engine()

        with pytest.raises(RuntimeError):
            get_session_factory()
