"""Async PostgreSQL connection pool with read-only query execution.

Every query runs on its own leased connection inside
``BEGIN TRANSACTION READ ONLY`` and is always rolled back, never committed.
The database's read-only transaction is the only write protection; the SQL
text is not inspected.
"""
import logging
import warnings
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from gatedpg.config import config
from gatedpg.errors import (
    ConnectionUnavailableError,
    QueryExecutionError,
    RollbackWarning,
)

logger = logging.getLogger(__name__)


def _engine_message(e: psycopg.Error) -> str:
    diag = getattr(e, "diag", None)
    primary = getattr(diag, "message_primary", None) if diag is not None else None
    return primary or str(e).strip() or type(e).__name__


class DatabasePool:
    """Manages the async connection pool to PostgreSQL.

    - Connections open in autocommit mode; transactions are explicit.
    - Connection health is checked before checkout.
    - A lease waits at most ``pool_timeout`` seconds for a free connection.
    """

    def __init__(self):
        self._pool: Optional[AsyncConnectionPool] = None

    async def initialize(self, conninfo: str):
        self._pool = AsyncConnectionPool(
            conninfo=conninfo,
            min_size=config.pool_min_size,
            max_size=config.pool_max_size,
            open=False,
            kwargs={
                "row_factory": dict_row,
                "autocommit": True,
                "connect_timeout": config.query_timeout_seconds,
            },
            check=AsyncConnectionPool.check_connection,
            max_lifetime=config.pool_max_lifetime,
            max_idle=config.pool_max_idle,
            timeout=config.pool_timeout,
            reconnect_timeout=30,
        )
        await self._pool.open()
        logger.info("PostgreSQL connection pool initialized")

    async def close(self):
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    @asynccontextmanager
    async def lease(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow one connection; it goes back to the pool on every exit path."""
        if not self._pool:
            raise ConnectionUnavailableError(
                "Database pool not initialized. Is DATABASE_URL set?"
            )

        try:
            conn = await self._pool.getconn(timeout=config.pool_timeout)
        except (psycopg.OperationalError, OSError, TimeoutError) as e:
            # PoolTimeout and PoolClosed are OperationalError subclasses
            raise ConnectionUnavailableError(
                f"Could not get a database connection: {e}"
            ) from e

        try:
            yield conn
        finally:
            await self._pool.putconn(conn)

    async def _rollback(self, conn: psycopg.AsyncConnection):
        try:
            await conn.execute("ROLLBACK")
        except (psycopg.Error, OSError) as e:
            logger.warning(f"Could not roll back transaction: {e}")
            warnings.warn(
                f"Could not roll back transaction: {e}", RollbackWarning, stacklevel=2
            )

    async def execute_readonly(
        self, sql: str, params: tuple = None, max_rows: int = None,
    ) -> list[dict[str, Any]]:
        """Run one statement in a read-only transaction and return its rows.

        The statement is prepared, so the server rejects input holding more
        than one command. The transaction is rolled back whether the
        statement succeeded or not. Rows keep the projection's column order.

        Raises:
            ConnectionUnavailableError: no connection could be leased or the
                connection dropped before the transaction began.
            QueryExecutionError: the statement failed, including writes
                rejected by the read-only transaction.
        """
        effective_max = max_rows or config.max_rows
        async with self.lease() as conn:
            try:
                await conn.execute("BEGIN TRANSACTION READ ONLY")
            except psycopg.OperationalError as e:
                raise ConnectionUnavailableError(
                    f"Database connection lost: {_engine_message(e)}"
                ) from e
            except psycopg.Error as e:
                await self._rollback(conn)
                raise QueryExecutionError(
                    _engine_message(e), sqlstate=getattr(e, "sqlstate", None)
                ) from e

            try:
                async with conn.cursor() as cur:
                    await cur.execute(sql, params, prepare=True)
                    if cur.description:
                        rows = await cur.fetchmany(effective_max)
                        return [dict(row) for row in rows]
                    return []
            except psycopg.Error as e:
                raise QueryExecutionError(
                    _engine_message(e), sqlstate=getattr(e, "sqlstate", None)
                ) from e
            finally:
                await self._rollback(conn)


pool = DatabasePool()
