"""Application services."""

from .auth_service import AuthService, InvalidToken

__all__ = ["AuthService", "InvalidToken"]
