# mypy: ignore-errors

from __future__ import annotations

from api_helpers import bearer, register


def test_register_login_and_me(client) -> None:
    session = register(client, "Coach@Example.com", "Coach", role="staff")
    assert session["user"]["email"] == "coach@example.com"
    assert "passwordHash" not in session["user"]

    resp = client.post(
        "/api/auth/login", json={"email": "coach@example.com", "password": "s3cret!"}
    )
    assert resp.status_code == 200
    token_session = resp.json()

    resp = client.get("/api/auth/me", headers=bearer(token_session))
    assert resp.status_code == 200
    assert resp.json()["role"] == "staff"
    assert resp.json()["displayName"] == "Coach"


def test_duplicate_registration_is_409(client) -> None:
    register(client, "dup@example.com", "First")
    resp = client.post(
        "/api/auth/register",
        json={"email": "DUP@example.com", "password": "s3cret!", "displayName": "Second"},
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "email already registered"


def test_self_registration_cannot_grant_manager_roles(client) -> None:
    for role in ("admin", "coach"):
        resp = client.post(
            "/api/auth/register",
            json={
                "email": f"{role}@example.com",
                "password": "s3cret!",
                "displayName": "Sneaky",
                "role": role,
            },
        )
        assert resp.status_code == 400
        assert resp.json()["details"] == [
            {
                "field": "role",
                "message": "self-registration is limited to player or staff accounts",
            }
        ]
    login = client.post(
        "/api/auth/login", json={"email": "admin@example.com", "password": "s3cret!"}
    )
    assert login.status_code == 401


def test_registration_validation(client) -> None:
    resp = client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": "123", "displayName": "X"},
    )
    assert resp.status_code == 400
    fields = {d["field"] for d in resp.json()["details"]}
    assert {"email", "password", "displayName"} <= fields


def test_bad_credentials_are_401(client) -> None:
    register(client, "p@example.com", "Player")
    wrong = client.post("/api/auth/login", json={"email": "p@example.com", "password": "nope"})
    ghost = client.post("/api/auth/login", json={"email": "x@example.com", "password": "nope"})
    assert wrong.status_code == 401
    assert ghost.status_code == 401
    assert wrong.json()["error"] == ghost.json()["error"]
    assert client.get("/api/auth/me").status_code == 401
