"""
Database connection and session management using asyncpg.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import asyncpg
from asyncpg import Pool, Connection
from asyncpg.exceptions import (
    InterfaceError,
    PostgresConnectionError,
    PostgresError,
    QueryCanceledError,
    TransactionRollbackError,
)
from fastapi import Request

from affiliates.config import Settings
from affiliates.errors import StoreUnavailableError
from affiliates.schema import SCHEMA_STATEMENTS

logger = logging.getLogger(__name__)

# Transient failures: nothing was committed and the call may be retried.
# TransactionRollbackError covers deadlocks and serialization failures.
STORE_FAILURES = (
    PostgresConnectionError,
    InterfaceError,
    QueryCanceledError,
    TransactionRollbackError,
    asyncio.TimeoutError,
    OSError,
)


@asynccontextmanager
async def store_errors(operation: str, detail: str = "Retry later.") -> AsyncGenerator[None, None]:
    """
    Translate database failures raised inside the block.

    Raises:
        StoreUnavailableError: for any asyncpg or connection-level failure
    """
    try:
        yield
    except STORE_FAILURES as e:
        logger.error(f"{operation} failed: {e!r}")
        raise StoreUnavailableError(f"The registry database is unavailable. {detail}") from e
    except PostgresError as e:
        logger.error(f"{operation} failed with unexpected database error: {e!r}")
        raise StoreUnavailableError(f"The registry database rejected the request. {detail}") from e


class Database:
    """Async PostgreSQL database connection pool manager."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: Optional[Pool] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._pool is not None:
                return

            logger.info("Connecting to PostgreSQL...")

            self._pool = await asyncpg.create_pool(
                dsn=self._settings.asyncpg_dsn,
                min_size=self._settings.db_pool_min_size,
                max_size=self._settings.db_pool_max_size,
                command_timeout=self._settings.db_command_timeout,
                server_settings={
                    'application_name': self._settings.app_name,
                }
            )

            logger.info("PostgreSQL connection pool created successfully")

    async def disconnect(self) -> None:
        """Close the connection pool."""
        async with self._lock:
            if self._pool is None:
                return

            logger.info("Closing PostgreSQL connection pool...")
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    @property
    def pool(self) -> Pool:
        """Get the connection pool."""
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    async def init_schema(self) -> None:
        """Create the registry tables if they are missing."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                for statement in SCHEMA_STATEMENTS:
                    await conn.execute(statement)
        logger.info("Database schema is up to date")

    async def execute(self, query: str, *args) -> str:
        """Execute a query and return status."""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args) -> list:
        """Fetch all rows from a query."""
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        """Fetch a single row from a query."""
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args):
        """Fetch a single value from a query."""
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """Acquire a connection from the pool."""
        async with self.pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        """
        Get a connection inside a transaction.

        The transaction commits when the block exits normally and rolls
        back on any exception.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            result = await self.fetchval("SELECT 1")
            return result == 1
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


async def get_db(request: Request) -> Database:
    """Dependency injection for the database attached at startup."""
    return request.app.state.database
