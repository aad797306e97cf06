from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from typing import Sequence

from pydantic import ValidationError

from team_presence.application.services.auth_service import AuthService
from team_presence.config.settings import Settings, settings
from team_presence.db.database import open_database
from team_presence.db.migrate import run_migrations
from team_presence.domain.entities import Registration, User
from team_presence.domain.errors import Failure, Result
from team_presence.domain.value_objects.enums import UserRole
from team_presence.logging_config import get_logger
from team_presence.repositories.sql import UsersRepoSql


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Manage team presence user accounts")
    sub = p.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a user (for example the first admin)")
    create.add_argument("--email", required=True)
    create.add_argument("--name", required=True, help="Display name")
    create.add_argument(
        "--role",
        choices=[r.value for r in UserRole],
        default=UserRole.PLAYER.value,
    )
    create.add_argument(
        "--password", help="Password (prompted for when omitted)", default=None
    )
    create.add_argument("--database-url", help="Override DATABASE_URL")
    return p


async def _create_user(cfg: Settings, registration: Registration) -> Result[User]:
    db = open_database(cfg)
    await db.connect()
    try:
        await run_migrations(db)
        return await UsersRepoSql(db).create(
            registration.email,
            AuthService.hash_password(registration.password),
            registration.display_name,
            registration.role,
        )
    finally:
        await db.close()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    get_logger()

    password = args.password or getpass.getpass("Password: ")
    try:
        registration = Registration(
            email=args.email, password=password, display_name=args.name, role=args.role
        )
    except ValidationError as exc:
        for err in exc.errors():
            field = ".".join(str(p) for p in err["loc"])
            print(f"{field}: {err['msg']}", file=sys.stderr)
        return 2

    cfg = settings
    if args.database_url:
        cfg = settings.model_copy(update={"database_url": args.database_url})

    result = asyncio.run(_create_user(cfg, registration))
    if isinstance(result, Failure):
        print(f"Error: {result.message}", file=sys.stderr)
        return 1
    user = result.value
    print(f"Created {user.role.value} {user.email} [id={user.id}]")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
