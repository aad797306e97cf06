from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from team_presence.db.query_builder import ABSENT
from team_presence.domain.entities import Match, MatchChanges, MatchDraft
from team_presence.domain.errors import Result
from team_presence.domain.value_objects.enums import MatchStatus

DEFAULT_PAGE_SIZE = 50
ORDERABLE_COLUMNS = ("date", "created_at", "opponent", "status")


@dataclass(frozen=True)
class MatchFilters:
    """Optional list filters; :data:`ABSENT` means "do not filter"."""

    status: MatchStatus | Any = ABSENT
    date_from: datetime | Any = ABSENT
    date_to: datetime | Any = ABSENT


@dataclass(frozen=True)
class Pagination:
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be positive")
        if self.offset < 0:
            raise ValueError("offset must not be negative")


@dataclass(frozen=True)
class MatchOrder:
    column: str = "date"
    descending: bool = False

    def __post_init__(self) -> None:
        if self.column not in ORDERABLE_COLUMNS:
            raise ValueError(f"cannot order matches by {self.column!r}")


@dataclass(frozen=True)
class MatchPage:
    rows: list[Match] = field(default_factory=list)
    total: int = 0


class MatchesRepo(ABC):
    """Abstract repository interface for :class:`Match` entities."""

    @abstractmethod
    async def find_all(
        self,
        filters: MatchFilters = MatchFilters(),
        pagination: Pagination = Pagination(),
        order: MatchOrder = MatchOrder(),
    ) -> Result[MatchPage]:
        """List matches and the total count for the same filters."""

    @abstractmethod
    async def get_by_id(self, match_id: int) -> Result[Match]:
        """Return a match or a ``NOT_FOUND`` failure."""

    @abstractmethod
    async def create(self, draft: MatchDraft) -> Result[Match]:
        """Persist a new match; its date must be in the future."""

    @abstractmethod
    async def update(self, match_id: int, changes: MatchChanges) -> Result[Match]:
        """Apply the explicitly provided fields of ``changes``."""

    @abstractmethod
    async def delete(self, match_id: int) -> Result[Match]:
        """Remove a match and its presences; completed matches are kept."""

    @abstractmethod
    async def toggle_presence_window(self, match_id: int) -> Result[Match]:
        """Flip ``presence_open``; a past match cannot be opened."""
