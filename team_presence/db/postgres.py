from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Iterator, Optional

import asyncpg

from .database import (
    Connection,
    Database,
    ForeignKeyViolation,
    StorageUnavailable,
    UniqueViolation,
    adapt_arg,
)
from .query_builder import Dialect

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.ConnectionDoesNotExistError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
)


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except asyncpg.exceptions.UniqueViolationError as exc:
        raise UniqueViolation(str(exc)) from exc
    except asyncpg.exceptions.ForeignKeyViolationError as exc:
        raise ForeignKeyViolation(str(exc)) from exc
    except _CONNECTION_ERRORS as exc:
        raise StorageUnavailable(str(exc) or exc.__class__.__name__) from exc


def _affected(status: str) -> int:
    # asyncpg returns command tags such as "UPDATE 3" or "INSERT 0 1".
    last = status.rsplit(" ", 1)[-1] if status else ""
    return int(last) if last.isdigit() else 0


class PostgresConnection(Connection):
    dialect = Dialect.POSTGRES

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def execute(self, sql: str, *args: Any) -> int:
        with _translate_errors():
            status = await self._conn.execute(sql, *(adapt_arg(a) for a in args))
        return _affected(status)

    async def execute_script(self, script: str) -> None:
        with _translate_errors():
            await self._conn.execute(script)

    async def fetch(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        with _translate_errors():
            rows = await self._conn.fetch(sql, *(adapt_arg(a) for a in args))
        return [dict(r) for r in rows]

    async def fetchrow(self, sql: str, *args: Any) -> Optional[dict[str, Any]]:
        with _translate_errors():
            row = await self._conn.fetchrow(sql, *(adapt_arg(a) for a in args))
        return dict(row) if row is not None else None

    async def fetchval(self, sql: str, *args: Any) -> Any:
        with _translate_errors():
            return await self._conn.fetchval(sql, *(adapt_arg(a) for a in args))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Connection]:
        with _translate_errors():
            async with self._conn.transaction():
                yield self


class PostgresDatabase(Database):
    """asyncpg pool with bounded acquire wait and idle connection lifetime."""

    dialect = Dialect.POSTGRES

    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 1,
        max_size: int = 10,
        acquire_timeout: float = 5.0,
        connect_timeout: float = 10.0,
        idle_timeout: float = 300.0,
    ) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._acquire_timeout = acquire_timeout
        self._connect_timeout = connect_timeout
        self._idle_timeout = idle_timeout
        self._pool: Optional[asyncpg.Pool] = None

    async def connect(self) -> None:
        if self._pool is not None:
            return
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                timeout=self._connect_timeout,
                max_inactive_connection_lifetime=self._idle_timeout,
                command_timeout=60,
            )
        except _CONNECTION_ERRORS as exc:
            raise StorageUnavailable(f"cannot reach PostgreSQL: {exc}") from exc
        logger.info(
            "PostgreSQL pool ready", extra={"min_size": self._min_size, "max_size": self._max_size}
        )

    async def close(self) -> None:
        pool, self._pool = self._pool, None
        if pool is None:
            return
        try:
            # Pool.close() waits for acquired connections to be released.
            await asyncio.wait_for(pool.close(), timeout=self._connect_timeout)
        except asyncio.TimeoutError:
            logger.warning("PostgreSQL pool did not drain in time; terminating")
            pool.terminate()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Connection]:
        if self._pool is None:
            raise StorageUnavailable("database pool is not initialised")
        try:
            raw = await self._pool.acquire(timeout=self._acquire_timeout)
        except _CONNECTION_ERRORS as exc:
            raise StorageUnavailable(
                f"no connection available within {self._acquire_timeout}s"
            ) from exc
        try:
            yield PostgresConnection(raw)
        finally:
            await self._pool.release(raw)
