# mypy: ignore-errors

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from team_presence.application.services.auth_service import (
    TOKEN_ISSUER,
    AuthService,
    InvalidToken,
)
from team_presence.domain.entities import Registration, User
from team_presence.domain.errors import ErrorKind, Failure, Ok
from team_presence.domain.value_objects.enums import UserRole
from team_presence.repositories.users import UsersRepo

SECRET = "test-secret"


class _FakeUsers(UsersRepo):
    def __init__(self) -> None:
        self.by_id: dict[int, User] = {}

    async def create(self, email, password_hash, display_name, role):
        if any(u.email == email for u in self.by_id.values()):
            return Failure(ErrorKind.CONFLICT, "email already registered")
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        user = User(
            id=len(self.by_id) + 1,
            email=email,
            password_hash=password_hash,
            display_name=display_name,
            role=role,
            created_at=now,
            updated_at=now,
        )
        self.by_id[user.id] = user
        return Ok(user)

    async def get_by_id(self, user_id):
        user = self.by_id.get(user_id)
        return Ok(user) if user else Failure.not_found("user", user_id)

    async def get_by_email(self, email):
        for user in self.by_id.values():
            if user.email == email.lower():
                return Ok(user)
        return Failure.not_found("user", email)


def _service(users=None, clock=None, **kwargs) -> AuthService:
    return AuthService(
        users or _FakeUsers(),
        secret=SECRET,
        clock=clock or (lambda: datetime.now(timezone.utc)),
        **kwargs,
    )


def _registration(**overrides) -> Registration:
    data = {"email": "Coach@Example.com", "password": "s3cret!", "displayName": "Coach"}
    data.update(overrides)
    return Registration.model_validate(data)


def test_password_hashing_round_trip() -> None:
    hashed = AuthService.hash_password("s3cret!")
    assert hashed != "s3cret!"
    assert AuthService.verify_password(hashed, "s3cret!")
    assert not AuthService.verify_password(hashed, "wrong")
    assert not AuthService.verify_password("", "s3cret!")


def test_empty_secret_is_rejected() -> None:
    with pytest.raises(ValueError):
        AuthService(_FakeUsers(), secret="")


def test_register_returns_user_and_token() -> None:
    svc = _service()
    result = asyncio.run(svc.register(_registration(role="staff")))
    assert isinstance(result, Ok)
    user, token = result.value["user"], result.value["token"]
    assert user.email == "coach@example.com"
    assert user.role is UserRole.STAFF
    claims = jwt.decode(token, SECRET, algorithms=["HS256"], issuer=TOKEN_ISSUER)
    assert claims["sub"] == str(user.id)
    assert claims["role"] == "staff"
    assert claims["email"] == "coach@example.com"


def test_register_defaults_to_player_and_reports_conflicts() -> None:
    svc = _service()
    first = asyncio.run(svc.register(_registration()))
    second = asyncio.run(svc.register(_registration()))
    assert first.value["user"].role is UserRole.PLAYER
    assert isinstance(second, Failure)
    assert second.kind is ErrorKind.CONFLICT


@pytest.mark.parametrize("role", ["admin", "coach"])
def test_register_refuses_manager_roles(role: str) -> None:
    users = _FakeUsers()
    result = asyncio.run(_service(users).register(_registration(role=role)))
    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.VALIDATION
    assert result.details[0].field == "role"
    assert users.by_id == {}


def test_login_success_and_failures() -> None:
    svc = _service()
    asyncio.run(svc.register(_registration()))
    ok = asyncio.run(svc.login("coach@example.com", "s3cret!"))
    wrong = asyncio.run(svc.login("coach@example.com", "nope"))
    unknown = asyncio.run(svc.login("ghost@example.com", "s3cret!"))
    assert isinstance(ok, Ok)
    assert svc.decode_token(ok.value["token"])["sub"] == str(ok.value["user"].id)
    for failed in (wrong, unknown):
        assert isinstance(failed, Failure)
        assert failed.kind is ErrorKind.UNAUTHORIZED
    assert wrong.message == unknown.message


def test_inactive_user_cannot_log_in() -> None:
    users = _FakeUsers()
    svc = _service(users)
    registered = asyncio.run(svc.register(_registration())).value["user"]
    users.by_id[registered.id] = registered.model_copy(update={"active": False})
    result = asyncio.run(svc.login("coach@example.com", "s3cret!"))
    assert isinstance(result, Failure) and result.kind is ErrorKind.UNAUTHORIZED


def test_expired_and_tampered_tokens_are_invalid() -> None:
    issued_at = datetime.now(timezone.utc) - timedelta(days=2)
    old = _service(clock=lambda: issued_at, expires_minutes=60)
    user = asyncio.run(old.register(_registration())).value["user"]
    expired = old.issue_token(user)
    with pytest.raises(InvalidToken, match="expired"):
        old.decode_token(expired)
    with pytest.raises(InvalidToken):
        old.decode_token("not-a-token")
    forged = jwt.encode(
        {"sub": "1", "iss": TOKEN_ISSUER, "exp": 4102444800}, "other", algorithm="HS256"
    )
    with pytest.raises(InvalidToken):
        old.decode_token(forged)


def test_current_user_resolves_tokens() -> None:
    users = _FakeUsers()
    svc = _service(users)
    session = asyncio.run(svc.register(_registration())).value
    resolved = asyncio.run(svc.current_user(session["token"]))
    assert resolved == Ok(session["user"])
    garbage = asyncio.run(svc.current_user("garbage"))
    assert garbage.kind is ErrorKind.UNAUTHORIZED
    users.by_id.clear()
    gone = asyncio.run(svc.current_user(session["token"]))
    assert gone.kind is ErrorKind.UNAUTHORIZED
