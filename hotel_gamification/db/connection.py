"""Connection pool for the postgres document store"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from hotel_gamification.config import (
    DATABASE_URL,
    DB_POOL_MAX_SIZE,
    DB_POOL_MIN_SIZE,
    DB_POOL_TIMEOUT,
)
from hotel_gamification.exceptions import PersistenceUnavailableError, wrap_external_exception

logger = logging.getLogger(__name__)


class Database:
    """
    Owns one AsyncConnectionPool for the engine process.

    The pool is opened by init_pool() at startup and closed by close_pool()
    on shutdown. Connections hand out rows as dicts.
    """

    def __init__(
        self,
        connection_string: str = DATABASE_URL,
        min_size: int = DB_POOL_MIN_SIZE,
        max_size: int = DB_POOL_MAX_SIZE,
        timeout: float = DB_POOL_TIMEOUT,
    ):
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self._pool: Optional[AsyncConnectionPool] = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def init_pool(self) -> None:
        """Open the pool and wait until min_size connections are ready"""
        if self._pool is not None:
            return

        logger.info(f"Opening gamification store pool (min={self.min_size}, max={self.max_size})")
        pool = AsyncConnectionPool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            open=False,
        )
        try:
            await pool.open(wait=True, timeout=self.timeout)
        except Exception as e:
            await pool.close()
            raise wrap_external_exception(e, operation="init_pool")
        self._pool = pool

    async def close_pool(self) -> None:
        if self._pool is None:
            return
        logger.info("Closing gamification store pool")
        pool, self._pool = self._pool, None
        await pool.close()

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow a pooled connection with dict rows"""
        if self._pool is None:
            raise PersistenceUnavailableError(
                message="Database pool not initialized",
                operation="connection",
            )

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn

    async def ping(self) -> bool:
        """Round-trip a trivial query; False when the store is unreachable"""
        try:
            async with self.connection() as conn:
                await conn.execute("SELECT 1")
            return True
        except Exception as e:
            logger.warning(f"Store ping failed: {e}")
            return False
