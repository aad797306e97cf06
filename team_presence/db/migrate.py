"""Versioned SQL migration runner for the PostgreSQL and SQLite backends."""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
from pathlib import Path
from typing import Iterable, Sequence

from .database import Database
from .query_builder import Dialect

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

logger = logging.getLogger(__name__)


async def applied_versions(db: Database) -> set[str]:
    async with db.acquire() as conn:
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations (version TEXT PRIMARY KEY)"
        )
        rows = await conn.fetch("SELECT version FROM schema_migrations")
    return {row["version"] for row in rows}


def available_migrations(dialect: Dialect) -> Iterable[tuple[str, Path]]:
    pattern = re.compile(r"V(\d+)__.+\.sql$")
    folder = MIGRATIONS_DIR / dialect.value
    found = []
    for path in folder.glob("V*__*.sql"):
        match = pattern.match(path.name)
        if match:
            found.append((int(match.group(1)), match.group(1), path))
    for _, version, path in sorted(found):
        yield version, path


async def run_migrations(db: Database) -> list[str]:
    """Apply pending migrations in version order and return the versions applied."""
    done = await applied_versions(db)
    applied: list[str] = []
    insert_sql = (
        f"INSERT INTO schema_migrations (version) VALUES ({db.dialect.placeholder(1)})"
    )
    for version, path in available_migrations(db.dialect):
        if version in done:
            continue
        async with db.acquire() as conn:
            await conn.execute_script(path.read_text(encoding="utf-8"))
            await conn.execute(insert_sql, version)
        logger.info("Applied migration", extra={"version": version, "file": path.name})
        applied.append(version)
    return applied


async def _migrate(database_url: str | None) -> list[str]:
    from team_presence.config.settings import settings as default_settings

    from .database import open_database

    settings = default_settings
    if database_url:
        settings = settings.model_copy(update={"database_url": database_url})
    db = open_database(settings)
    await db.connect()
    try:
        return await run_migrations(db)
    finally:
        await db.close()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Apply pending database migrations")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    args = parser.parse_args(argv)

    from team_presence.logging_config import get_logger

    get_logger()
    applied = asyncio.run(_migrate(args.database_url))
    if applied:
        print(f"Applied migrations: {', '.join(applied)}")
    else:
        print("Schema is up to date.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
