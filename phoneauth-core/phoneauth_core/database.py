"""
Database Module
===============
Async engine and session factory helpers for the SQL stores.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import (
    create_async_engine as sa_create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.orm import DeclarativeBase
import structlog

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


# Global engine and session factory - initialized by create_async_engine()
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_async_engine(
    database_url: str,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_pre_ping: bool = True,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create and configure the async database engine.

    Call this once during application startup.

    Args:
        database_url: Async connection string (postgresql+asyncpg://..., sqlite+aiosqlite://...)
        pool_size: Connection pool size (default: 10, ignored for SQLite)
        max_overflow: Max overflow connections (default: 20, ignored for SQLite)
        pool_pre_ping: Enable connection health checks (default: True)
        echo: Log SQL statements (default: False)

    Returns:
        Configured AsyncEngine instance
    """
    global _engine, _async_session_factory

    engine_kwargs = {"pool_pre_ping": pool_pre_ping, "echo": echo}
    if not database_url.startswith("sqlite"):
        engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)

    _engine = sa_create_async_engine(database_url, **engine_kwargs)
    _async_session_factory = create_session_factory(_engine)

    logger.info("Database engine initialized", dialect=_engine.dialect.name)
    return _engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with the settings the stores rely on."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Get the current database engine."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call create_async_engine() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get the session factory for creating database sessions.

    Usage:
        store = SqlAlchemyOtpStore(get_session_factory())
    """
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call create_async_engine() first.")
    return _async_session_factory


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    """Create the OTP and customer tables if they do not exist."""
    from . import tables  # noqa: F401  registers the models on Base.metadata

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured", tables=sorted(Base.metadata.tables))


async def close_engine() -> None:
    """Close the database engine. Call during application shutdown."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database engine closed")
