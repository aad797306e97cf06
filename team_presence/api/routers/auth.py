from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from team_presence.application.services.auth_service import AuthService, Session
from team_presence.domain.entities import Credentials, Registration, User

from ..deps import get_auth_service, get_current_user
from ..errors import unwrap

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_body(session: Session) -> dict[str, Any]:
    return {
        "user": session["user"].model_dump(by_alias=True, mode="json"),
        "token": session["token"],
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: Registration, auth: AuthService = Depends(get_auth_service)
) -> dict[str, Any]:
    return _session_body(unwrap(await auth.register(payload)))


@router.post("/login")
async def login(
    credentials: Credentials, auth: AuthService = Depends(get_auth_service)
) -> dict[str, Any]:
    return _session_body(unwrap(await auth.login(credentials.email, credentials.password)))


@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return user.model_dump(by_alias=True, mode="json")
