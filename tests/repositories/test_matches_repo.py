# mypy: ignore-errors

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from team_presence.db.database import StorageUnavailable
from team_presence.db.query_builder import Dialect
from team_presence.domain.entities import MatchChanges, MatchDraft, PresenceEntry
from team_presence.domain.errors import ErrorKind, Failure, Ok
from team_presence.domain.value_objects.enums import MatchStatus, PresenceStatus, UserRole
from team_presence.repositories.matches import MatchFilters, MatchOrder, Pagination
from team_presence.repositories.sql import MatchesRepoSql, PresencesRepoSql, UsersRepoSql


def _draft(clock, days: int = 7, **overrides) -> MatchDraft:
    data = {
        "opponent": "FC Rival",
        "location": "Stadium A",
        "date": clock() + timedelta(days=days),
    }
    data.update(overrides)
    return MatchDraft(**data)


def test_create_returns_defaults(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            return await MatchesRepoSql(db, clock=clock).create(_draft(clock))

    result = asyncio.run(scenario())
    assert isinstance(result, Ok)
    match = result.value
    assert match.id > 0
    assert match.status is MatchStatus.SCHEDULED
    assert match.presence_open is False
    assert match.is_home is True
    assert match.date == clock() + timedelta(days=7)
    assert match.created_at == clock()


def test_create_in_the_past_is_rejected_without_writing(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            repo = MatchesRepoSql(db, clock=clock)
            created = await repo.create(_draft(clock, days=-1))
            page = await repo.find_all()
            return created, page.value.total

    created, total = asyncio.run(scenario())
    assert isinstance(created, Failure)
    assert created.kind is ErrorKind.VALIDATION
    assert created.details[0].field == "date"
    assert total == 0


def test_duplicate_fixture_is_a_conflict(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            repo = MatchesRepoSql(db, clock=clock)
            await repo.create(_draft(clock))
            return await repo.create(_draft(clock, opponent="Other Club"))

    result = asyncio.run(scenario())
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.CONFLICT


def test_unknown_man_of_match_is_a_validation_failure(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            return await MatchesRepoSql(db, clock=clock).create(
                _draft(clock, man_of_match_id=4242)
            )

    result = asyncio.run(scenario())
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.VALIDATION
    assert result.details[0].field == "manOfMatchId"


def test_get_by_id_missing(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            return await MatchesRepoSql(db, clock=clock).get_by_id(99)

    result = asyncio.run(scenario())
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.NOT_FOUND
    assert result.message == "match 99 not found"


def test_find_all_filters_paginates_and_counts(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            repo = MatchesRepoSql(db, clock=clock)
            for day in range(1, 6):
                await repo.create(_draft(clock, days=day, location=f"Ground {day}"))
            await repo.create(
                _draft(clock, days=10, location="Cup Ground", status=MatchStatus.POSTPONED)
            )
            everything = await repo.find_all()
            window = await repo.find_all(
                MatchFilters(
                    date_from=clock() + timedelta(days=2),
                    date_to=clock() + timedelta(days=4),
                ),
            )
            paged = await repo.find_all(
                MatchFilters(status=MatchStatus.SCHEDULED),
                Pagination(limit=2, offset=2),
                MatchOrder(column="date", descending=True),
            )
            return everything.value, window.value, paged.value

    everything, window, paged = asyncio.run(scenario())
    assert everything.total == 6
    assert [m.location for m in everything.rows][:2] == ["Ground 1", "Ground 2"]
    assert window.total == 3
    assert [m.location for m in window.rows] == ["Ground 2", "Ground 3", "Ground 4"]
    assert paged.total == 5
    assert [m.location for m in paged.rows] == ["Ground 3", "Ground 2"]


def test_update_applies_only_provided_fields(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            repo = MatchesRepoSql(db, clock=clock)
            created = (await repo.create(_draft(clock, description="Derby"))).value
            clock.advance(minutes=5)
            changes = MatchChanges.model_validate({"scoreTeam": 0, "description": None})
            return created, await repo.update(created.id, changes)

    created, result = asyncio.run(scenario())
    assert isinstance(result, Ok)
    updated = result.value
    assert updated.score_team == 0
    assert updated.description is None
    assert updated.opponent == created.opponent
    assert updated.date == created.date
    assert updated.updated_at > created.updated_at


def test_update_with_no_fields_is_empty_update(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            return await MatchesRepoSql(db, clock=clock).update(1, MatchChanges())

    result = asyncio.run(scenario())
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.EMPTY_UPDATE


def test_update_missing_match(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            return await MatchesRepoSql(db, clock=clock).update(
                5, MatchChanges(opponent="New Name")
            )

    result = asyncio.run(scenario())
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.NOT_FOUND


def test_update_guards_dates(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            repo = MatchesRepoSql(db, clock=clock)
            match = (await repo.create(_draft(clock))).value
            past = await repo.update(match.id, MatchChanges(date=clock() - timedelta(hours=1)))
            await repo.update(match.id, MatchChanges(status=MatchStatus.COMPLETED))
            completed = await repo.update(
                match.id, MatchChanges(date=clock() + timedelta(days=30))
            )
            score = await repo.update(match.id, MatchChanges(score_team=3, score_opponent=1))
            stored = (await repo.get_by_id(match.id)).value
            return match, past, completed, score, stored

    match, past, completed, score, stored = asyncio.run(scenario())
    assert isinstance(past, Failure) and past.kind is ErrorKind.INVALID_TRANSITION
    assert isinstance(completed, Failure) and completed.kind is ErrorKind.INVALID_TRANSITION
    assert isinstance(score, Ok)
    assert stored.date == match.date
    assert stored.status is MatchStatus.COMPLETED
    assert (stored.score_team, stored.score_opponent) == (3, 1)


def test_delete_removes_match_and_its_presences(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            users = UsersRepoSql(db, clock=clock)
            player = (await users.create("p@example.com", "h", "Player", UserRole.PLAYER)).value
            repo = MatchesRepoSql(db, clock=clock)
            match = (await repo.create(_draft(clock))).value
            await PresencesRepoSql(db, clock=clock).submit(
                match.id, [PresenceEntry(user_id=player.id, status=PresenceStatus.PRESENT)]
            )
            deleted = await repo.delete(match.id)
            again = await repo.get_by_id(match.id)
            async with db.acquire() as conn:
                left = await conn.fetchval(
                    "SELECT COUNT(*) FROM presences WHERE match_id = ?1", match.id
                )
            return match, deleted, again, left

    match, deleted, again, left = asyncio.run(scenario())
    assert isinstance(deleted, Ok) and deleted.value.id == match.id
    assert isinstance(again, Failure) and again.kind is ErrorKind.NOT_FOUND
    assert left == 0


def test_delete_completed_match_is_rejected(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            repo = MatchesRepoSql(db, clock=clock)
            match = (await repo.create(_draft(clock, status=MatchStatus.COMPLETED))).value
            deleted = await repo.delete(match.id)
            still_there = await repo.get_by_id(match.id)
            missing = await repo.delete(match.id + 1)
            return deleted, still_there, missing

    deleted, still_there, missing = asyncio.run(scenario())
    assert isinstance(deleted, Failure) and deleted.kind is ErrorKind.INVALID_TRANSITION
    assert isinstance(still_there, Ok)
    assert isinstance(missing, Failure) and missing.kind is ErrorKind.NOT_FOUND


def test_toggle_presence_window(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            repo = MatchesRepoSql(db, clock=clock)
            match = (await repo.create(_draft(clock, days=1))).value
            opened = await repo.toggle_presence_window(match.id)
            closed = await repo.toggle_presence_window(match.id)
            clock.advance(days=2)
            late = await repo.toggle_presence_window(match.id)
            return opened, closed, late

    opened, closed, late = asyncio.run(scenario())
    assert opened.value.presence_open is True
    assert closed.value.presence_open is False
    assert isinstance(late, Failure) and late.kind is ErrorKind.INVALID_TRANSITION


def test_update_cannot_open_presences_for_a_past_match(memory_db, clock) -> None:
    async def scenario():
        async with memory_db() as db:
            repo = MatchesRepoSql(db, clock=clock)
            match = (await repo.create(_draft(clock, days=1))).value
            clock.advance(days=2)
            opened = await repo.update(match.id, MatchChanges(presence_open=True))
            closed = await repo.update(match.id, MatchChanges(presence_open=False))
            moved = await repo.update(
                match.id,
                MatchChanges(presence_open=True, date=clock() + timedelta(days=3)),
            )
            return opened, closed, moved, await repo.get_by_id(match.id)

    opened, closed, moved, current = asyncio.run(scenario())
    assert isinstance(opened, Failure) and opened.kind is ErrorKind.INVALID_TRANSITION
    assert isinstance(closed, Ok) and closed.value.presence_open is False
    assert isinstance(moved, Ok) and moved.value.presence_open is True
    assert current.value.date == moved.value.date


def test_storage_outage_is_reported_as_unavailable(clock) -> None:
    class _DownDatabase:
        dialect = Dialect.SQLITE

        def acquire(self):
            raise StorageUnavailable("pool exhausted")

    result = asyncio.run(MatchesRepoSql(_DownDatabase(), clock=clock).get_by_id(1))
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.UNAVAILABLE


@pytest.mark.parametrize("column", ["id; drop", "password_hash"])
def test_order_column_is_whitelisted(column: str) -> None:
    with pytest.raises(ValueError):
        MatchOrder(column=column)
