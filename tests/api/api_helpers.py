# mypy: ignore-errors

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from team_presence.application.services.auth_service import AuthService
from team_presence.domain.value_objects.enums import UserRole
from team_presence.repositories.sql import UsersRepoSql

PASSWORD = "s3cret!"


def future(days: float = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def register(client: TestClient, email: str, name: str, role: str = "player") -> dict:
    resp = client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "displayName": name, "role": role},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_user(client: TestClient, email: str, name: str, role: str) -> dict:
    """Write the account straight to the app database, then log in over HTTP."""
    users = UsersRepoSql(client.app.state.database)
    created = client.portal.call(
        users.create, email, AuthService.hash_password(PASSWORD), name, UserRole(role)
    )
    assert created.ok, created
    resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return resp.json()


def bearer(session: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {session['token']}"}
