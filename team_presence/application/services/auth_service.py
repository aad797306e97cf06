from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Mapping, TypedDict

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from team_presence.domain.entities import Registration, User
from team_presence.domain.errors import ErrorKind, Failure, Ok, Result
from team_presence.domain.value_objects.clock import Clock, utcnow
from team_presence.domain.value_objects.enums import UserRole
from team_presence.repositories.users import UsersRepo

logger = logging.getLogger(__name__)

TOKEN_ISSUER = "team-presence-manager"
TOKEN_ALGORITHM = "HS256"
# Admin and coach accounts are created with `team-presence-users create`.
SELF_SERVICE_ROLES = frozenset({UserRole.PLAYER, UserRole.STAFF})


class InvalidToken(Exception):
    """The bearer token is malformed, tampered with or expired."""


class Session(TypedDict):
    user: User
    token: str


class AuthService:
    """Password hashing, bearer tokens and the register/login flows.

    - Passwords are hashed with ``werkzeug.security`` (salted, never stored plain).
    - Tokens are HS256 JWTs carrying ``sub`` (user id), ``email`` and ``role``.
    - Login failures never reveal whether the email exists.
    - Self-registration only creates player or staff accounts.
    """

    def __init__(
        self,
        users: UsersRepo,
        *,
        secret: str,
        expires_minutes: int = 7 * 24 * 60,
        clock: Clock = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("secret must not be empty")
        self._users = users
        self._secret = secret
        self._expires = timedelta(minutes=expires_minutes)
        self._clock = clock

    @staticmethod
    def hash_password(password: str) -> str:
        return generate_password_hash(password)

    @staticmethod
    def verify_password(password_hash: str, password: str) -> bool:
        if not password_hash:
            return False
        return check_password_hash(password_hash, password)

    def issue_token(self, user: User) -> str:
        now = self._clock()
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
            "iss": TOKEN_ISSUER,
            "iat": int(now.timestamp()),
            "exp": int((now + self._expires).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=TOKEN_ALGORITHM)

    def decode_token(self, token: str) -> Mapping[str, Any]:
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                issuer=TOKEN_ISSUER,
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("token expired") from exc
        except jwt.PyJWTError as exc:
            raise InvalidToken("invalid token") from exc

    async def register(self, payload: Registration) -> Result[Session]:
        if payload.role not in SELF_SERVICE_ROLES:
            logger.info("Registration rejected", extra={"role": payload.role.value})
            return Failure.validation(
                "role", "self-registration is limited to player or staff accounts"
            )
        created = await self._users.create(
            payload.email,
            self.hash_password(payload.password),
            payload.display_name,
            payload.role,
        )
        if isinstance(created, Failure):
            return created
        user = created.value
        return Ok(Session(user=user, token=self.issue_token(user)))

    async def login(self, email: str, password: str) -> Result[Session]:
        found = await self._users.get_by_email(email)
        if isinstance(found, Failure):
            if found.kind is not ErrorKind.NOT_FOUND:
                return found
            logger.info("Login rejected", extra={"reason": "unknown email"})
            return _bad_credentials()
        user = found.value
        if not user.active or not self.verify_password(user.password_hash, password):
            logger.info("Login rejected", extra={"user_id": user.id})
            return _bad_credentials()
        return Ok(Session(user=user, token=self.issue_token(user)))

    async def current_user(self, token: str) -> Result[User]:
        """Resolve a bearer token to an active user, or ``UNAUTHORIZED``."""
        try:
            claims = self.decode_token(token)
            user_id = int(claims["sub"])
        except (InvalidToken, ValueError) as exc:
            return Failure(ErrorKind.UNAUTHORIZED, "invalid or expired token", cause=str(exc))
        found = await self._users.get_by_id(user_id)
        if isinstance(found, Failure):
            if found.kind is ErrorKind.NOT_FOUND:
                return Failure(ErrorKind.UNAUTHORIZED, "user no longer exists")
            return found
        if not found.value.active:
            return Failure(ErrorKind.UNAUTHORIZED, "account disabled")
        return found


def _bad_credentials() -> Failure:
    return Failure(ErrorKind.UNAUTHORIZED, "invalid email or password")
