"""Database connection management with async support and connection pooling."""

import logging
from typing import Any, AsyncGenerator, Dict
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import NullPool

from catlocator.config.settings import Settings
from catlocator.domain.exceptions import StorageException

logger = logging.getLogger(__name__)


class DatabaseConnectionException(StorageException):
    """Exception raised for database connection errors."""
    pass


_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None

_POSTGRES_PREFIXES = ("postgres://", "postgresql://")


def get_database_url(settings: Settings) -> str:
    """Normalize the configured database URL for async SQLAlchemy.

    Heroku-style ``postgres://`` and plain ``postgresql://`` URLs are
    switched to the asyncpg driver; anything else is used as given.
    """
    url = settings.database_url
    for prefix in _POSTGRES_PREFIXES:
        if url.startswith(prefix):
            return "postgresql+asyncpg://" + url[len(prefix):]
    return url


def is_postgresql_url(database_url: str) -> bool:
    return database_url.startswith("postgresql")


def _engine_options(settings: Settings, database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}

    if settings.environment == "test":
        options["poolclass"] = NullPool
    elif is_postgresql_url(database_url):
        options.update(
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=3600,  # Recycle connections after 1 hour
            pool_pre_ping=True,
        )

    if is_postgresql_url(database_url):
        options["connect_args"] = {
            "server_settings": {
                "application_name": "catlocator",
            },
        }

    return options


def get_database_engine(settings: Settings | None = None) -> AsyncEngine:
    """Get or create the database engine.

    Args:
        settings: Application settings. If None, will create new Settings instance.

    Returns:
        AsyncEngine: SQLAlchemy async engine

    Raises:
        DatabaseConnectionException: If engine creation fails
    """
    global _engine

    if _engine is None:
        if settings is None:
            settings = Settings()

        database_url = get_database_url(settings)
        try:
            _engine = create_async_engine(
                database_url, **_engine_options(settings, database_url)
            )
        except Exception as e:
            logger.error(f"Failed to create database engine: {e}")
            raise DatabaseConnectionException(
                f"Failed to create database engine: {e}",
                "DB_ENGINE_CREATION_FAILED",
                {"error": str(e)}
            ) from e

        logger.info(f"Created database engine for {_engine.url.render_as_string(hide_password=True)}")

    return _engine


def get_async_session_factory(
    settings: Settings | None = None
) -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory."""
    global _async_session_factory

    if _async_session_factory is None:
        engine = get_database_engine(settings)

        _async_session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info("Created async session factory")

    return _async_session_factory


@asynccontextmanager
async def get_async_session(
    settings: Settings | None = None
) -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database sessions with automatic cleanup.

    Raises:
        DatabaseConnectionException: If a database error escapes the block
    """
    session_factory = get_async_session_factory(settings)

    async with session_factory() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise DatabaseConnectionException(
                f"Database session error: {e}",
                "DB_SESSION_ERROR",
                {"error": str(e)}
            ) from e
        except Exception:
            await session.rollback()
            raise


async def close_database_engine() -> None:
    """Close the database engine and clean up connections."""
    global _engine, _async_session_factory

    if _engine:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database engine closed")


# For testing and development
async def create_all_tables(settings: Settings | None = None) -> None:
    """Create all tables in the database.

    Note:
        This is primarily for testing. In production, use Alembic migrations.
    """
    from .models import Base

    engine = get_database_engine(settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Created all database tables")


async def drop_all_tables(settings: Settings | None = None) -> None:
    """Drop all tables in the database.

    Warning:
        This will delete all data. Use only for testing.
    """
    from .models import Base

    engine = get_database_engine(settings)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    logger.info("Dropped all database tables")
