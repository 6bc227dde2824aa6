"""
Database engine and session management.

Provides async SQLAlchemy engine and session factory for FastAPI.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from manatomb.config import settings
from manatomb.models.db import Base
from manatomb.models.failure import UnexpectedError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Dependency that provides the session factory.

    Services open their own transaction per operation, so they take the
    factory rather than a request-scoped session.
    """
    return async_session_factory


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
    raise_conflicts: bool = False,
) -> AsyncIterator[AsyncSession]:
    """
    Run a block inside one transaction.

    Commits on success and rolls back on any exception. Store failures
    surface as UnexpectedError. With raise_conflicts, IntegrityError passes
    through untouched so the caller can resolve a uniqueness race itself.
    """
    try:
        async with session_factory.begin() as session:
            yield session
    except IntegrityError as e:
        if raise_conflicts:
            raise
        logger.exception("Constraint violation, transaction rolled back")
        raise UnexpectedError() from e
    except SQLAlchemyError as e:
        logger.exception("Store failure, transaction rolled back")
        raise UnexpectedError() from e


async def init_db() -> None:
    """
    Initialize database tables.

    Creates all tables defined in the ORM models.
    Should be called once at application startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

