from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from team_presence.domain.entities import PresenceEntry, Roster
from team_presence.domain.errors import Result


class PresencesRepo(ABC):
    """Abstract interface for a match roster."""

    @abstractmethod
    async def submit(self, match_id: int, entries: Sequence[PresenceEntry]) -> Result[int]:
        """
        Upsert every entry for ``match_id`` in one transaction.

        Either all entries are stored or none is. Returns the number of
        entries applied.

        Example:
            >>> await repo.submit(7, [PresenceEntry(user_id=1, status="present")])
            Ok(value=1)
        """

    @abstractmethod
    async def get_presences(self, match_id: int) -> Result[Roster]:
        """Return every eligible user's status for ``match_id`` with counts."""
