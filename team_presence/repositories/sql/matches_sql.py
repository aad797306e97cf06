from __future__ import annotations

import logging
from typing import Any, Optional

from team_presence.db.database import Connection, Database, ForeignKeyViolation
from team_presence.db.query_builder import (
    ABSENT,
    Clause,
    EmptyUpdateError,
    Op,
    assign,
    build_count,
    build_insert,
    build_select,
    build_update,
    where,
)
from team_presence.domain.entities import Match, MatchChanges, MatchDraft
from team_presence.domain.errors import ErrorKind, Failure, Ok, Result
from team_presence.domain.value_objects.clock import Clock, utcnow

from ..matches import MatchesRepo, MatchFilters, MatchOrder, MatchPage, Pagination
from .storage_guard import storage_guard

logger = logging.getLogger(__name__)

TABLE = "matches"
COLUMNS = (
    "id",
    "opponent",
    "location",
    "date",
    "is_home",
    "type",
    "status",
    "score_team",
    "score_opponent",
    "presence_open",
    "man_of_match_id",
    "description",
    "created_at",
    "updated_at",
)
# Writable columns, in the order their SET/VALUES clauses are rendered.
WRITABLE = (
    "opponent",
    "location",
    "date",
    "is_home",
    "type",
    "status",
    "score_team",
    "score_opponent",
    "presence_open",
    "man_of_match_id",
    "description",
)


def _to_match(row: dict[str, Any]) -> Match:
    return Match.model_validate(row)


def _unknown_man_of_match() -> Failure:
    return Failure.validation("manOfMatchId", "referenced user does not exist")


class MatchesRepoSql(MatchesRepo):
    """SQL implementation of :class:`MatchesRepo` for any :class:`Database` backend.

    Business guards (future date, completed match, past presence window) are
    evaluated before any write and reported as failures, never raised.
    """

    def __init__(self, db: Database, *, clock: Clock = utcnow) -> None:
        self._db = db
        self._clock = clock

    @staticmethod
    def filter_clauses(filters: MatchFilters) -> list[Clause]:
        # Shared by the row and count queries so both see the same predicate.
        return [
            where("status", filters.status),
            where("date", filters.date_from, Op.GTE),
            where("date", filters.date_to, Op.LTE),
        ]

    async def _load(self, conn: Connection, match_id: int) -> Optional[Match]:
        stmt = build_select(
            TABLE, COLUMNS, [where("id", match_id)], dialect=self._db.dialect
        )
        row = await conn.fetchrow_statement(stmt)
        return _to_match(row) if row is not None else None

    @storage_guard("match")
    async def find_all(
        self,
        filters: MatchFilters = MatchFilters(),
        pagination: Pagination = Pagination(),
        order: MatchOrder = MatchOrder(),
    ) -> Result[MatchPage]:
        clauses = self.filter_clauses(filters)
        direction = "DESC" if order.descending else "ASC"
        rows_stmt = build_select(
            TABLE,
            COLUMNS,
            clauses,
            dialect=self._db.dialect,
            order_by=[(order.column, direction), ("id", direction)],
            limit=pagination.limit,
            offset=pagination.offset,
        )
        count_stmt = build_count(TABLE, clauses, dialect=self._db.dialect)
        async with self._db.acquire() as conn:
            rows = await conn.fetch_statement(rows_stmt)
            total = await conn.fetchval_statement(count_stmt)
        return Ok(MatchPage(rows=[_to_match(r) for r in rows], total=int(total or 0)))

    @storage_guard("match")
    async def get_by_id(self, match_id: int) -> Result[Match]:
        async with self._db.acquire() as conn:
            match = await self._load(conn, match_id)
        if match is None:
            return Failure.not_found("match", match_id)
        return Ok(match)

    @storage_guard("match")
    async def create(self, draft: MatchDraft) -> Result[Match]:
        now = self._clock()
        if draft.date <= now:
            return Failure.validation("date", "match date must be in the future")

        values = [assign(column, getattr(draft, column)) for column in WRITABLE]
        values += [assign("created_at", now), assign("updated_at", now)]
        stmt = build_insert(TABLE, values, dialect=self._db.dialect, returning=COLUMNS)
        try:
            async with self._db.acquire() as conn:
                row = await conn.fetchrow_statement(stmt)
        except ForeignKeyViolation:
            return _unknown_man_of_match()
        assert row is not None
        match = _to_match(row)
        logger.info("Match created", extra={"match_id": match.id, "opponent": match.opponent})
        return Ok(match)

    @storage_guard("match")
    async def update(self, match_id: int, changes: MatchChanges) -> Result[Match]:
        provided = changes.model_fields_set
        now = self._clock()
        assignments = [
            assign(column, getattr(changes, column) if column in provided else ABSENT)
            for column in WRITABLE
        ]
        try:
            stmt = build_update(
                TABLE,
                assignments,
                key=("id", match_id),
                dialect=self._db.dialect,
                extra=[assign("updated_at", now)],
                returning=COLUMNS,
            )
        except EmptyUpdateError:
            return Failure(ErrorKind.EMPTY_UPDATE, "no fields to update")

        try:
            async with self._db.transaction() as conn:
                current = await self._load(conn, match_id)
                if current is None:
                    return Failure.not_found("match", match_id)
                if "date" in provided:
                    if current.is_completed:
                        return Failure.invalid_transition(
                            "cannot change the date of a completed match"
                        )
                    if changes.date is not None and changes.date <= now:
                        return Failure.invalid_transition("match date must be in the future")
                if changes.presence_open and not current.presence_open:
                    date = changes.date if "date" in provided else current.date
                    if date is None or date <= now:
                        return Failure.invalid_transition(
                            "cannot open presences for a past match"
                        )
                row = await conn.fetchrow_statement(stmt)
        except ForeignKeyViolation:
            return _unknown_man_of_match()
        assert row is not None
        logger.info(
            "Match updated", extra={"match_id": match_id, "fields": sorted(provided)}
        )
        return Ok(_to_match(row))

    @storage_guard("match")
    async def delete(self, match_id: int) -> Result[Match]:
        ph = self._db.dialect.placeholder
        async with self._db.transaction() as conn:
            current = await self._load(conn, match_id)
            if current is None:
                return Failure.not_found("match", match_id)
            if current.is_completed:
                return Failure.invalid_transition("cannot delete a completed match")
            removed = await conn.execute(
                f"DELETE FROM presences WHERE match_id = {ph(1)}", match_id
            )
            await conn.execute(f"DELETE FROM {TABLE} WHERE id = {ph(1)}", match_id)
        logger.info("Match deleted", extra={"match_id": match_id, "presences_removed": removed})
        return Ok(current)

    @storage_guard("match")
    async def toggle_presence_window(self, match_id: int) -> Result[Match]:
        now = self._clock()
        async with self._db.transaction() as conn:
            current = await self._load(conn, match_id)
            if current is None:
                return Failure.not_found("match", match_id)
            opening = not current.presence_open
            if opening and current.date <= now:
                return Failure.invalid_transition("cannot open presences for a past match")
            stmt = build_update(
                TABLE,
                [assign("presence_open", opening)],
                key=("id", match_id),
                dialect=self._db.dialect,
                extra=[assign("updated_at", now)],
                returning=COLUMNS,
            )
            row = await conn.fetchrow_statement(stmt)
        assert row is not None
        return Ok(_to_match(row))
