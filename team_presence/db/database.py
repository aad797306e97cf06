"""Async connection pool interface shared by the PostgreSQL and SQLite backends.

Backends translate driver exceptions into the :class:`StorageError` hierarchy
so repositories can classify failures without knowing which driver is in use.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncContextManager, AsyncIterator, Optional

from .query_builder import Dialect, Statement

if TYPE_CHECKING:  # pragma: no cover - import for type checkers only
    from team_presence.config.settings import Settings


class StorageError(Exception):
    """Base class for translated driver errors."""


class UniqueViolation(StorageError):
    """A unique or primary key constraint rejected the write."""


class ForeignKeyViolation(StorageError):
    """A foreign key constraint rejected the write."""


class StorageUnavailable(StorageError):
    """The database is unreachable or no connection could be acquired in time."""


def adapt_arg(value: Any) -> Any:
    """Convert domain values into driver-friendly parameters."""
    if isinstance(value, Enum):
        return value.value
    return value


class Connection(ABC):
    """One pooled connection. Statements use the backend's :class:`Dialect`."""

    dialect: Dialect

    @abstractmethod
    async def execute(self, sql: str, *args: Any) -> int:
        """Run a statement and return the number of affected rows."""

    @abstractmethod
    async def execute_script(self, script: str) -> None:
        """Run several semicolon separated statements without parameters."""

    @abstractmethod
    async def fetch(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """Return every row as a dict keyed by column name."""

    @abstractmethod
    async def fetchrow(self, sql: str, *args: Any) -> Optional[dict[str, Any]]:
        """Return the first row or ``None``."""

    @abstractmethod
    async def fetchval(self, sql: str, *args: Any) -> Any:
        """Return the first column of the first row or ``None``."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager["Connection"]:
        """Commit on normal exit, roll back when the block raises."""

    async def fetch_statement(self, stmt: Statement) -> list[dict[str, Any]]:
        return await self.fetch(stmt.sql, *stmt.args)

    async def fetchrow_statement(self, stmt: Statement) -> Optional[dict[str, Any]]:
        return await self.fetchrow(stmt.sql, *stmt.args)

    async def fetchval_statement(self, stmt: Statement) -> Any:
        return await self.fetchval(stmt.sql, *stmt.args)


class Database(ABC):
    """A bounded pool of connections, created at startup and closed at shutdown."""

    dialect: Dialect

    @abstractmethod
    async def connect(self) -> None:
        """Open the pool. Raises :class:`StorageUnavailable` if unreachable."""

    @abstractmethod
    async def close(self) -> None:
        """Wait for in-flight connections to be released, then close them."""

    @abstractmethod
    def acquire(self) -> AsyncContextManager[Connection]:
        """Borrow a connection; raises :class:`StorageUnavailable` on timeout."""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Connection]:
        async with self.acquire() as conn:
            async with conn.transaction():
                yield conn


def open_database(settings: "Settings") -> Database:
    """Build the backend selected by ``settings.database_url`` (not yet connected)."""
    url = settings.database_url
    if url.startswith(("postgres://", "postgresql://")):
        from .postgres import PostgresDatabase

        return PostgresDatabase(
            url,
            min_size=settings.db_pool_min,
            max_size=settings.db_pool_max,
            acquire_timeout=settings.db_acquire_timeout,
            connect_timeout=settings.db_connect_timeout,
            idle_timeout=settings.db_idle_timeout,
        )
    if url.startswith("sqlite://"):
        from .sqlite import SqliteDatabase

        return SqliteDatabase(
            sqlite_path(url),
            pool_size=settings.db_pool_max,
            acquire_timeout=settings.db_acquire_timeout,
        )
    raise RuntimeError(f"Unsupported DATABASE_URL scheme: {url.split(':', 1)[0]!r}")


def sqlite_path(url: str) -> str:
    """``sqlite:///relative.db``, ``sqlite:////abs/path.db`` or ``sqlite:///:memory:``."""
    path = url[len("sqlite://") :]
    if path in ("", "/", "/:memory:"):
        return ":memory:"
    return path[1:] if path.startswith("/") else path
