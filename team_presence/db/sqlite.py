from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Iterator, Optional

import aiosqlite

from team_presence.domain.value_objects.clock import as_utc

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

_UNAVAILABLE_MARKERS = ("database is locked", "unable to open", "disk i/o error")


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as exc:
        msg = str(exc)
        if "UNIQUE constraint failed" in msg or "PRIMARY KEY" in msg:
            raise UniqueViolation(msg) from exc
        if "FOREIGN KEY constraint failed" in msg:
            raise ForeignKeyViolation(msg) from exc
        raise
    except sqlite3.OperationalError as exc:
        msg = str(exc)
        if any(marker in msg.lower() for marker in _UNAVAILABLE_MARKERS):
            raise StorageUnavailable(msg) from exc
        raise


def _adapt(value: Any) -> Any:
    value = adapt_arg(value)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        # Fixed-width UTC text keeps lexical order equal to time order.
        return as_utc(value).isoformat(timespec="microseconds")
    return value


class SqliteConnection(Connection):
    dialect = Dialect.SQLITE

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def execute(self, sql: str, *args: Any) -> int:
        with _translate_errors():
            async with self._conn.execute(sql, tuple(_adapt(a) for a in args)) as cur:
                return cur.rowcount

    async def execute_script(self, script: str) -> None:
        with _translate_errors():
            await self._conn.executescript(script)

    async def fetch(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        with _translate_errors():
            async with self._conn.execute(sql, tuple(_adapt(a) for a in args)) as cur:
                rows = await cur.fetchall()
        return [dict(r) for r in rows]

    async def fetchrow(self, sql: str, *args: Any) -> Optional[dict[str, Any]]:
        rows = await self.fetch(sql, *args)
        return rows[0] if rows else None

    async def fetchval(self, sql: str, *args: Any) -> Any:
        with _translate_errors():
            async with self._conn.execute(sql, tuple(_adapt(a) for a in args)) as cur:
                row = await cur.fetchone()
        return row[0] if row is not None else None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Connection]:
        with _translate_errors():
            await self._conn.execute("BEGIN")
        try:
            yield self
            with _translate_errors():
                await self._conn.execute("COMMIT")
        except BaseException:
            if self._conn.in_transaction:
                await self._conn.execute("ROLLBACK")
            raise


class SqliteDatabase(Database):
    """A small queue of aiosqlite connections (a single one for ``:memory:``)."""

    dialect = Dialect.SQLITE

    def __init__(self, path: str, *, pool_size: int = 5, acquire_timeout: float = 5.0) -> None:
        self._path = path
        self._size = 1 if path == ":memory:" else max(1, pool_size)
        self._acquire_timeout = acquire_timeout
        self._idle: Optional[asyncio.Queue[aiosqlite.Connection]] = None
        self._all: list[aiosqlite.Connection] = []

    @property
    def path(self) -> str:
        return self._path

    async def connect(self) -> None:
        if self._idle is not None:
            return
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        try:
            for _ in range(self._size):
                # Autocommit mode: transactions are opened explicitly with BEGIN.
                conn = await aiosqlite.connect(
                    self._path, timeout=self._acquire_timeout, isolation_level=None
                )
                conn.row_factory = aiosqlite.Row
                await conn.execute("PRAGMA foreign_keys = ON")
                self._all.append(conn)
                idle.put_nowait(conn)
        except sqlite3.Error as exc:
            for conn in self._all:
                await conn.close()
            self._all.clear()
            raise StorageUnavailable(f"cannot open SQLite database {self._path!r}: {exc}") from exc
        self._idle = idle
        logger.info("SQLite pool ready", extra={"path": self._path, "size": self._size})

    async def close(self) -> None:
        idle, self._idle = self._idle, None
        if idle is None:
            return
        drained = 0
        try:
            while drained < len(self._all):
                await asyncio.wait_for(idle.get(), timeout=self._acquire_timeout)
                drained += 1
        except asyncio.TimeoutError:
            logger.warning(
                "SQLite pool did not drain in time",
                extra={"in_use": len(self._all) - drained},
            )
        for conn in self._all:
            await conn.close()
        self._all.clear()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Connection]:
        idle = self._idle
        if idle is None:
            raise StorageUnavailable("database pool is not initialised")
        try:
            raw = await asyncio.wait_for(idle.get(), timeout=self._acquire_timeout)
        except asyncio.TimeoutError as exc:
            raise StorageUnavailable(
                f"no connection available within {self._acquire_timeout}s"
            ) from exc
        try:
            yield SqliteConnection(raw)
        finally:
            idle.put_nowait(raw)
