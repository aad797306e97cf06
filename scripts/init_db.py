from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path


async def ensure_schema(database_url: str) -> list[str]:
    # Schema comes from the versioned migrations so it always matches the code
    from team_presence.config.settings import settings
    from team_presence.db.database import open_database
    from team_presence.db.migrate import run_migrations

    db = open_database(settings.model_copy(update={"database_url": database_url}))
    await db.connect()
    try:
        return await run_migrations(db)
    finally:
        await db.close()


def main() -> int:
    # Ensure project root (containing 'team_presence') is importable
    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    parser = argparse.ArgumentParser(description="Initialize the SQLite database schema")
    parser.add_argument(
        "--db",
        default=os.path.join("data", "team_presence.sqlite3"),
        help="Path to SQLite DB file (will be created if missing)",
    )
    args = parser.parse_args()

    db_path = os.path.abspath(args.db)
    os.makedirs(os.path.dirname(db_path), exist_ok=True)

    applied = asyncio.run(ensure_schema(f"sqlite:///{db_path}"))

    print(f"Initialized schema at: {db_path} (applied: {', '.join(applied) or 'none'})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
