from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel

from team_presence.config.settings import MAX_PAGE, MAX_PAGE_SIZE
from team_presence.db.query_builder import ABSENT
from team_presence.domain.entities import MatchChanges, MatchDraft, PresenceSubmission, User
from team_presence.domain.value_objects.clock import as_utc
from team_presence.domain.value_objects.enums import MatchStatus
from team_presence.repositories.matches import (
    DEFAULT_PAGE_SIZE,
    MatchesRepo,
    MatchFilters,
    MatchOrder,
    Pagination,
)
from team_presence.repositories.presences import PresencesRepo

from ..deps import get_current_user, get_matches_repo, get_presences_repo, require_manager
from ..errors import unwrap

router = APIRouter(prefix="/api/matches", tags=["matches"])

SortColumn = Literal["date", "createdAt", "opponent", "status"]
_SORT_COLUMNS = {
    "date": "date",
    "createdAt": "created_at",
    "opponent": "opponent",
    "status": "status",
}


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


@router.get("")
async def list_matches(
    status_filter: Optional[MatchStatus] = Query(None, alias="status"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    sort: SortColumn = Query("date"),
    order: Literal["asc", "desc"] = Query("asc"),
    matches: MatchesRepo = Depends(get_matches_repo),
) -> dict[str, Any]:
    limit = min(limit, MAX_PAGE_SIZE)
    offset = (page - 1) * limit
    filters = MatchFilters(
        status=status_filter if status_filter is not None else ABSENT,
        date_from=as_utc(date_from) if date_from is not None else ABSENT,
        date_to=as_utc(date_to) if date_to is not None else ABSENT,
    )
    result = unwrap(
        await matches.find_all(
            filters,
            Pagination(limit=limit, offset=offset),
            MatchOrder(column=_SORT_COLUMNS[sort], descending=order == "desc"),
        )
    )
    return {
        "matches": [_dump(m) for m in result.rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "offset": offset,
            "total": result.total,
            "pages": math.ceil(result.total / limit),
        },
    }


@router.get("/{match_id}")
async def get_match(
    match_id: int = Path(..., ge=1),
    matches: MatchesRepo = Depends(get_matches_repo),
    presences: PresencesRepo = Depends(get_presences_repo),
) -> dict[str, Any]:
    match = unwrap(await matches.get_by_id(match_id))
    roster = unwrap(await presences.get_presences(match_id))
    body = _dump(match)
    body["presences"] = [_dump(entry) for entry in roster.presences]
    body["stats"] = _dump(roster.stats)
    return body


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_match(
    draft: MatchDraft,
    matches: MatchesRepo = Depends(get_matches_repo),
    _: User = Depends(require_manager),
) -> dict[str, Any]:
    return _dump(unwrap(await matches.create(draft)))


@router.put("/{match_id}")
async def update_match(
    changes: MatchChanges,
    match_id: int = Path(..., ge=1),
    matches: MatchesRepo = Depends(get_matches_repo),
    _: User = Depends(require_manager),
) -> dict[str, Any]:
    return _dump(unwrap(await matches.update(match_id, changes)))


@router.delete("/{match_id}")
async def delete_match(
    match_id: int = Path(..., ge=1),
    matches: MatchesRepo = Depends(get_matches_repo),
    _: User = Depends(require_manager),
) -> dict[str, Any]:
    deleted = unwrap(await matches.delete(match_id))
    return {"message": "match deleted", "id": deleted.id}


@router.patch("/{match_id}/toggle-presence")
async def toggle_presence(
    match_id: int = Path(..., ge=1),
    matches: MatchesRepo = Depends(get_matches_repo),
    _: User = Depends(require_manager),
) -> dict[str, Any]:
    match = unwrap(await matches.toggle_presence_window(match_id))
    return {"id": match.id, "presenceOpen": match.presence_open}


@router.post("/{match_id}/presences")
async def submit_presences(
    submission: PresenceSubmission,
    match_id: int = Path(..., ge=1),
    presences: PresencesRepo = Depends(get_presences_repo),
    _: User = Depends(require_manager),
) -> dict[str, Any]:
    count = unwrap(await presences.submit(match_id, submission.presences))
    return {"message": "presences saved", "matchId": match_id, "count": count}


@router.get("/{match_id}/presences")
async def list_presences(
    match_id: int = Path(..., ge=1),
    presences: PresencesRepo = Depends(get_presences_repo),
    _: User = Depends(get_current_user),
) -> dict[str, Any]:
    roster = unwrap(await presences.get_presences(match_id))
    return _dump(roster)
