"""
Database session management.

Provides async database sessions using SQLAlchemy 2.0 async features.
"""

import ssl
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from hkidash.core.config import settings
from hkidash.core.logging import get_logger

logger = get_logger(__name__)

# libpq options that hosted Postgres URLs carry and asyncpg rejects
LIBPQ_PARAMS = {
    "sslmode",
    "channel_binding",
    "sslcert",
    "sslkey",
    "sslrootcert",
    "target_session_attrs",
    "options",
    "application_name",
}


def _prepare_asyncpg_url(database_url: str) -> tuple[str, dict[str, Any]]:
    """
    Strip libpq-only query parameters and turn ``sslmode`` into connect_args.

    Non-asyncpg URLs are returned untouched.
    """
    if "+asyncpg" not in database_url:
        return database_url, {}

    parsed = urlparse(database_url)
    query_params = parse_qs(parsed.query)
    connect_args: dict[str, Any] = {}

    sslmode = query_params.get("sslmode", [None])[0]
    for param in LIBPQ_PARAMS:
        query_params.pop(param, None)

    if sslmode in ("require", "verify-ca", "verify-full"):
        ssl_context = ssl.create_default_context()
        if sslmode == "require":
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context
    elif sslmode == "prefer":
        connect_args["ssl"] = "prefer"

    clean_url = urlunparse(parsed._replace(query=urlencode(query_params, doseq=True)))
    return clean_url, connect_args


def create_engine() -> AsyncEngine:
    """
    Create the async database engine.

    Uses connection pooling outside tests and NullPool under test.
    """
    database_url, connect_args = _prepare_asyncpg_url(settings.database_url)

    engine_kwargs: dict[str, Any] = {
        "echo": settings.debug and settings.environment == "development",
    }
    if connect_args:
        engine_kwargs["connect_args"] = connect_args

    if settings.environment == "test" or database_url.startswith("sqlite"):
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs["pool_size"] = settings.db_pool_size
        engine_kwargs["max_overflow"] = settings.db_max_overflow
        engine_kwargs["pool_timeout"] = settings.db_pool_timeout
        engine_kwargs["pool_pre_ping"] = True

    return create_async_engine(database_url, **engine_kwargs)


engine = create_engine()

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that yields a database session.

    Commits when the request handler returns and rolls back on any error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside a request.

    Usage:
        async with get_db_context() as db:
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Verify database connectivity at startup."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established")
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise


async def close_db() -> None:
    """Dispose of pooled connections at shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")
