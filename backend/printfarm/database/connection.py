"""
Database engine construction with SQLAlchemy async engines.

This module builds async engines and session factories from explicit
settings. Nothing here is global: the EntityStore owns the engine it creates
and disposes it on shutdown.
"""

import asyncio
from typing import Any, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from printfarm.core.config import Settings
from printfarm.core.logging import get_logger

logger = get_logger(__name__)


def convert_database_url_to_async(url: str) -> str:
    """
    Convert a database URL to its async driver form.

    Args:
        url: Database connection URL

    Returns:
        URL using asyncpg for PostgreSQL or aiosqlite for SQLite
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


UNIQUE_VIOLATION_SQLSTATE = "23505"
UNIQUE_VIOLATION_MESSAGES = (
    "UNIQUE constraint failed",
    "duplicate key value violates unique constraint",
)


def is_unique_violation(error: IntegrityError, column: Optional[str] = None) -> bool:
    """
    Tell a uniqueness violation apart from other integrity failures.

    PostgreSQL drivers expose the SQLSTATE; SQLite only reports it in the
    message text. When ``column`` is given, the violation must also name it.
    """
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    message = str(orig)
    if sqlstate != UNIQUE_VIOLATION_SQLSTATE and not any(
        marker in message for marker in UNIQUE_VIOLATION_MESSAGES
    ):
        return False
    return column is None or column in message


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create async SQLAlchemy engine for the configured database.

    SQLite connections are not pooled and get foreign key enforcement turned
    on per connection. PostgreSQL uses a queue pool except under tests.

    Args:
        settings: Application settings

    Returns:
        Configured async SQLAlchemy engine
    """
    database_url = convert_database_url_to_async(settings.database_url)

    engine_kwargs: dict[str, Any] = {"echo": settings.debug}

    if settings.is_sqlite:
        engine_kwargs["poolclass"] = NullPool
    elif settings.is_test:
        engine_kwargs["poolclass"] = NullPool
        engine_kwargs["connect_args"] = {
            "server_settings": {"application_name": settings.app_name},
        }
    else:
        engine_kwargs.update(
            poolclass=AsyncAdaptedQueuePool,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args={
                "server_settings": {"application_name": settings.app_name},
                "command_timeout": 60,
                "timeout": 10,
            },
        )

    engine = create_async_engine(database_url, **engine_kwargs)

    if settings.is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    logger.info(
        "Database engine created",
        dialect=engine.dialect.name,
        pool_class=engine_kwargs["poolclass"].__name__,
        environment=settings.environment,
    )

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create the session factory bound to ``engine``.

    Sessions do not expire objects on commit so results stay readable after
    the transaction that produced them has closed.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def check_database_health(
    engine: AsyncEngine, max_retries: int = 3, retry_delay: float = 1.0
) -> bool:
    """
    Check database connectivity with retry logic.

    Args:
        engine: Engine to check
        max_retries: Maximum number of connection attempts
        retry_delay: Base delay between retries in seconds, doubled per attempt

    Returns:
        True if database is healthy, False otherwise
    """
    for attempt in range(max_retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.debug("Database health check passed", attempt=attempt + 1)
            return True
        except (OperationalError, DBAPIError) as e:
            logger.warning(
                "Database health check failed",
                attempt=attempt + 1,
                max_retries=max_retries,
                error=str(e),
                error_type=type(e).__name__,
            )
        except SQLAlchemyError as e:
            logger.error(
                "Database health check failed - SQLAlchemy error",
                attempt=attempt + 1,
                max_retries=max_retries,
                error=str(e),
                error_type=type(e).__name__,
            )
        if attempt < max_retries - 1:
            await asyncio.sleep(retry_delay * (2**attempt))

    logger.error("Database health check failed after all retries", max_retries=max_retries)
    return False
