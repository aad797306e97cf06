"""SQL repository implementations shared by the PostgreSQL and SQLite backends."""

from .matches_sql import MatchesRepoSql
from .presences_sql import PresencesRepoSql
from .users_sql import UsersRepoSql

__all__ = ["MatchesRepoSql", "PresencesRepoSql", "UsersRepoSql"]
