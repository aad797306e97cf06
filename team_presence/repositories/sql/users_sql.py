from __future__ import annotations

import logging
from typing import Any

from team_presence.db.database import Database, UniqueViolation
from team_presence.db.query_builder import assign, build_insert, build_select, where
from team_presence.domain.entities import User
from team_presence.domain.errors import ErrorKind, Failure, Ok, Result
from team_presence.domain.value_objects.clock import Clock, utcnow
from team_presence.domain.value_objects.enums import UserRole

from ..users import UsersRepo
from .storage_guard import storage_guard

logger = logging.getLogger(__name__)

TABLE = "users"
COLUMNS = (
    "id",
    "email",
    "password_hash",
    "display_name",
    "role",
    "active",
    "created_at",
    "updated_at",
)


def _to_user(row: dict[str, Any]) -> User:
    return User.model_validate(row)


class UsersRepoSql(UsersRepo):
    def __init__(self, db: Database, *, clock: Clock = utcnow) -> None:
        self._db = db
        self._clock = clock

    @storage_guard("user")
    async def create(
        self, email: str, password_hash: str, display_name: str, role: UserRole
    ) -> Result[User]:
        now = self._clock()
        stmt = build_insert(
            TABLE,
            [
                assign("email", email.strip().lower()),
                assign("password_hash", password_hash),
                assign("display_name", display_name),
                assign("role", role),
                assign("active", True),
                assign("created_at", now),
                assign("updated_at", now),
            ],
            dialect=self._db.dialect,
            returning=COLUMNS,
        )
        try:
            async with self._db.acquire() as conn:
                row = await conn.fetchrow_statement(stmt)
        except UniqueViolation as exc:
            return Failure(ErrorKind.CONFLICT, "email already registered", cause=str(exc))
        assert row is not None
        user = _to_user(row)
        logger.info("User created", extra={"user_id": user.id, "role": user.role.value})
        return Ok(user)

    @storage_guard("user")
    async def get_by_id(self, user_id: int) -> Result[User]:
        stmt = build_select(TABLE, COLUMNS, [where("id", user_id)], dialect=self._db.dialect)
        async with self._db.acquire() as conn:
            row = await conn.fetchrow_statement(stmt)
        if row is None:
            return Failure.not_found("user", user_id)
        return Ok(_to_user(row))

    @storage_guard("user")
    async def get_by_email(self, email: str) -> Result[User]:
        ph = self._db.dialect.placeholder
        sql = f"SELECT {', '.join(COLUMNS)} FROM {TABLE} WHERE LOWER(email) = {ph(1)}"
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(sql, email.strip().lower())
        if row is None:
            return Failure.not_found("user", email)
        return Ok(_to_user(row))
