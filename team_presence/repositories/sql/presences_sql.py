from __future__ import annotations

import logging
from typing import Sequence

from team_presence.db.database import Database, ForeignKeyViolation
from team_presence.domain.entities import PresenceEntry, PresenceStats, Roster, RosterEntry
from team_presence.domain.errors import ErrorKind, Failure, Ok, Result
from team_presence.domain.value_objects.clock import Clock, utcnow
from team_presence.domain.value_objects.enums import PresenceStatus, ROSTER_ROLES

from ..presences import PresencesRepo
from .storage_guard import storage_guard

logger = logging.getLogger(__name__)


class PresencesRepoSql(PresencesRepo):
    """Roster storage backed by the ``presences`` table."""

    def __init__(self, db: Database, *, clock: Clock = utcnow) -> None:
        self._db = db
        self._clock = clock

    @storage_guard("presence")
    async def submit(self, match_id: int, entries: Sequence[PresenceEntry]) -> Result[int]:
        if not entries:
            return Failure.validation("presences", "at least one presence is required")

        ph = self._db.dialect.placeholder
        now = self._clock()
        upsert = (
            "INSERT INTO presences (user_id, match_id, status, updated_at) "
            f"VALUES ({ph(1)}, {ph(2)}, {ph(3)}, {ph(4)}) "
            "ON CONFLICT (user_id, match_id) DO UPDATE "
            "SET status = excluded.status, updated_at = excluded.updated_at"
        )
        try:
            async with self._db.transaction() as conn:
                exists = await conn.fetchval(
                    f"SELECT 1 FROM matches WHERE id = {ph(1)}", match_id
                )
                if exists is None:
                    return Failure.not_found("match", match_id)
                for entry in entries:
                    await conn.execute(upsert, entry.user_id, match_id, entry.status, now)
        except ForeignKeyViolation as exc:
            # The match was checked above, so the missing row is a user.
            return Failure(
                ErrorKind.NOT_FOUND, "one or more users do not exist", cause=str(exc)
            )
        logger.info(
            "Presences submitted", extra={"match_id": match_id, "count": len(entries)}
        )
        return Ok(len(entries))

    @storage_guard("presence")
    async def get_presences(self, match_id: int) -> Result[Roster]:
        ph = self._db.dialect.placeholder
        roles = [role.value for role in ROSTER_ROLES]
        role_params = ", ".join(ph(i) for i in range(2, 2 + len(roles)))
        sql = (
            "SELECT u.id AS user_id, u.display_name, u.email, u.role, "
            f"COALESCE(p.status, '{PresenceStatus.UNKNOWN.value}') AS status, "
            "p.updated_at AS updated_at "
            "FROM users u "
            f"LEFT JOIN presences p ON p.user_id = u.id AND p.match_id = {ph(1)} "
            f"WHERE u.role IN ({role_params}) "
            "ORDER BY u.role, u.display_name, u.id"
        )
        async with self._db.acquire() as conn:
            exists = await conn.fetchval(f"SELECT 1 FROM matches WHERE id = {ph(1)}", match_id)
            if exists is None:
                return Failure.not_found("match", match_id)
            rows = await conn.fetch(sql, match_id, *roles)

        entries = [RosterEntry.model_validate(row) for row in rows]
        counts = {status: 0 for status in PresenceStatus}
        for entry in entries:
            counts[entry.status] += 1
        stats = PresenceStats(
            present=counts[PresenceStatus.PRESENT],
            absent=counts[PresenceStatus.ABSENT],
            unknown=counts[PresenceStatus.UNKNOWN],
            total=len(entries),
        )
        return Ok(Roster(presences=entries, stats=stats))
