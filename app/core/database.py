"""
Async database connection using asyncpg (NO ORM).

The dashboard only reads from PostgreSQL. Independent aggregate queries for a
single request run concurrently, so every branch acquires its own connection
from the pool instead of sharing the request connection.
"""

import asyncpg
from typing import AsyncGenerator
from contextlib import asynccontextmanager

from app.core.config import Settings
from app.core.exceptions import DataAccessError
from app.core.logging_config import get_logger

logger = get_logger(__name__)

# Global connection pool
_pool: asyncpg.Pool | None = None


async def init_db_pool(settings: Settings):
    """
    Initialize database connection pool on startup.

    Call this in the FastAPI lifespan event.
    """
    global _pool
    _pool = await asyncpg.create_pool(
        dsn=settings.DATABASE_URL,
        min_size=settings.DB_POOL_MIN_SIZE,
        max_size=settings.DB_POOL_MAX_SIZE,
        max_queries=50000,  # Maximum queries per connection before recycling
        max_inactive_connection_lifetime=300,  # Close idle connections after 5 minutes
        timeout=30,  # Connection timeout in seconds
        command_timeout=settings.DB_COMMAND_TIMEOUT,
    )
    logger.info(
        f"Database pool initialized: {_pool.get_size()} / {_pool.get_max_size()} connections"
    )


async def close_db_pool():
    """
    Close database connection pool on shutdown.

    Call this in the FastAPI lifespan event.
    """
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    """Return the initialized pool."""
    if not _pool:
        logger.error("Database pool not initialized. Call init_db_pool() first.")
        raise DataAccessError()
    return _pool


@asynccontextmanager
async def get_db_connection():
    """
    Get a database connection from the pool.

    Usage:
        async with get_db_connection() as conn:
            result = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
    """
    async with get_pool().acquire() as connection:
        yield connection


async def get_db() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    FastAPI dependency for database connections.

    Usage in routes:
        @router.get("/users")
        async def get_users(conn: asyncpg.Connection = Depends(get_db)):
            users = await conn.fetch("SELECT * FROM users")
            return users
    """
    async with get_pool().acquire() as connection:
        yield connection


# Helper functions to convert asyncpg.Record to dict
def record_to_dict(record: asyncpg.Record | None) -> dict | None:
    """Convert asyncpg Record to dictionary."""
    if record is None:
        return None
    return dict(record)


def records_to_list(records: list[asyncpg.Record]) -> list[dict]:
    """Convert list of asyncpg Records to list of dictionaries."""
    return [dict(record) for record in records]
