"""FastAPI dependencies: the pool from ``app.state``, repositories and auth."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from team_presence.application.services.auth_service import AuthService
from team_presence.config.settings import Settings
from team_presence.db.database import Database
from team_presence.domain.entities import User
from team_presence.domain.errors import ErrorKind, Failure
from team_presence.domain.value_objects.enums import MANAGER_ROLES, UserRole
from team_presence.repositories.matches import MatchesRepo
from team_presence.repositories.presences import PresencesRepo
from team_presence.repositories.sql import MatchesRepoSql, PresencesRepoSql, UsersRepoSql
from team_presence.repositories.users import UsersRepo

from .errors import ApiError, unwrap

_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_matches_repo(db: Database = Depends(get_database)) -> MatchesRepo:
    return MatchesRepoSql(db)


def get_presences_repo(db: Database = Depends(get_database)) -> PresencesRepo:
    return PresencesRepoSql(db)


def get_users_repo(db: Database = Depends(get_database)) -> UsersRepo:
    return UsersRepoSql(db)


def get_auth_service(
    users: UsersRepo = Depends(get_users_repo),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(
        users, secret=settings.jwt_secret, expires_minutes=settings.jwt_expires_minutes
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ApiError(Failure(ErrorKind.UNAUTHORIZED, "authentication required"))
    return unwrap(await auth.current_user(credentials.credentials))


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[User]]:
    allowed = frozenset(roles) or MANAGER_ROLES

    async def _dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise ApiError(Failure(ErrorKind.FORBIDDEN, "insufficient role"))
        return user

    return _dependency


require_manager = require_roles(*MANAGER_ROLES)
