"""
Entity store: owner of the database engine and its transactions.

The store is constructed explicitly from settings and passed to the services
that need it. Every mutating operation runs inside one ``transaction()``
scope, which commits on success, rolls back on any exception, and reports a
lost optimistic-concurrency race as ``TransactionConflictError``.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from printfarm.core.config import Settings, get_settings
from printfarm.core.exceptions import StorageError, TransactionConflictError
from printfarm.core.logging import get_logger
from printfarm.database import models  # noqa: F401  registers mappers
from printfarm.database.base import Base
from printfarm.database.connection import (
    check_database_health,
    create_engine,
    create_session_factory,
)

logger = get_logger(__name__)


class EntityStore:
    """Transactional access to all persisted entities."""

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EntityStore":
        """Build a store and its engine from application settings."""
        settings = settings or get_settings()
        return cls(create_engine(settings))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Open a session inside a single database transaction.

        Yields:
            Session whose work is committed when the block exits normally

        Raises:
            TransactionConflictError: If a versioned row was changed by a
                concurrent transaction
            StorageError: If the database fails for any other reason
        """
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    yield session
            except StaleDataError as e:
                logger.warning(
                    "Concurrent modification detected, transaction rolled back",
                    error=str(e),
                )
                raise TransactionConflictError(
                    "Record was modified by another transaction; reload and retry",
                ) from e
            except SQLAlchemyError as e:
                logger.error(
                    "Database failure, transaction rolled back",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise StorageError(
                    "Database operation failed", error_type=type(e).__name__
                ) from e

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Open a session for read-only work.

        Raises:
            StorageError: If the database fails while the session is in use
        """
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                logger.error("Database read failed", error=str(e))
                raise StorageError(
                    "Database read failed", error_type=type(e).__name__
                ) from e

    async def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured", tables=len(Base.metadata.tables))

    async def drop_schema(self) -> None:
        """Drop all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database schema dropped")

    async def is_healthy(self) -> bool:
        return await check_database_health(self.engine, max_retries=1)

    async def dispose(self) -> None:
        """Close all connections held by the engine."""
        await self.engine.dispose()
        logger.info("Database connections closed and engine disposed")
