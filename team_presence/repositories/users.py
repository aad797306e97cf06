from __future__ import annotations

from abc import ABC, abstractmethod

from team_presence.domain.entities import User
from team_presence.domain.errors import Result
from team_presence.domain.value_objects.enums import UserRole


class UsersRepo(ABC):
    """Abstract repository interface for :class:`User` entities."""

    @abstractmethod
    async def create(
        self, email: str, password_hash: str, display_name: str, role: UserRole
    ) -> Result[User]:
        """Persist a user; a duplicate email (any case) is a ``CONFLICT``."""

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Result[User]:
        """Return a user or a ``NOT_FOUND`` failure."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Result[User]:
        """Case-insensitive lookup."""
