# mypy: ignore-errors

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable

import pytest

from team_presence.db.migrate import run_migrations
from team_presence.db.sqlite import SqliteDatabase

T0 = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock for repositories; move it forward with ``advance``."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


@asynccontextmanager
async def _memory_db() -> AsyncIterator[SqliteDatabase]:
    db = SqliteDatabase(":memory:", acquire_timeout=1.0)
    await db.connect()
    await run_migrations(db)
    try:
        yield db
    finally:
        await db.close()


@pytest.fixture
def memory_db() -> Callable[[], "AsyncIterator[SqliteDatabase]"]:
    """Factory for a migrated in-memory database: ``async with memory_db() as db``."""
    return _memory_db


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()
