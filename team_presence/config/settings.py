"""Application settings for the team presence API.

This module centralises configuration for the database pool, token signing and
the HTTP server. Environment variables are loaded from a ``.env`` file using
``python-dotenv`` and exposed through a Pydantic settings object.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from a .env file if present
load_dotenv()

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_DATABASE_URL = "sqlite:///data/team_presence.sqlite3"
DEV_JWT_SECRET = "dev-only-secret-change-me"
DEFAULT_PORT = 3001
DEFAULT_CORS_ORIGIN = "http://localhost:5173"
MAX_PAGE_SIZE = 100
MAX_PAGE = 1_000_000


class Settings(BaseModel):
    """Immutable settings object used across the application."""

    app_env: str = "development"
    database_url: str = DEFAULT_DATABASE_URL
    db_pool_min: int = 1
    db_pool_max: int = 10
    db_acquire_timeout: float = 5.0  # seconds
    db_connect_timeout: float = 10.0  # seconds
    db_idle_timeout: float = 300.0  # seconds
    db_auto_migrate: bool = True
    jwt_secret: str = DEV_JWT_SECRET
    jwt_expires_minutes: int = 7 * 24 * 60
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    cors_origins: tuple[str, ...] = (DEFAULT_CORS_ORIGIN,)

    model_config = ConfigDict(frozen=True)

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _build_settings() -> Settings:
    """Construct the ``Settings`` instance based on environment variables."""

    app_env = os.getenv("APP_ENV", "development")

    jwt_secret = os.getenv("JWT_SECRET")
    if not jwt_secret:
        if app_env.lower() == "production":
            raise RuntimeError("JWT_SECRET is required when APP_ENV=production")
        jwt_secret = DEV_JWT_SECRET

    pool_min = _env_int("DB_POOL_MIN", 1)
    pool_max = _env_int("DB_POOL_MAX", 10)
    if pool_max < 1 or pool_min < 0 or pool_min > pool_max:
        raise RuntimeError(
            f"Invalid pool bounds: DB_POOL_MIN={pool_min}, DB_POOL_MAX={pool_max}"
        )

    origins = tuple(
        o.strip() for o in os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGIN).split(",") if o.strip()
    )

    return Settings(
        app_env=app_env,
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        db_pool_min=pool_min,
        db_pool_max=pool_max,
        db_acquire_timeout=_env_float("DB_ACQUIRE_TIMEOUT", 5.0),
        db_connect_timeout=_env_float("DB_CONNECT_TIMEOUT", 10.0),
        db_idle_timeout=_env_float("DB_IDLE_TIMEOUT", 300.0),
        db_auto_migrate=_env_flag("DB_AUTO_MIGRATE", True),
        jwt_secret=jwt_secret,
        jwt_expires_minutes=_env_int("JWT_EXPIRES_MINUTES", 7 * 24 * 60),
        host=os.getenv("HOST", "127.0.0.1"),
        port=_env_int("PORT", DEFAULT_PORT),
        cors_origins=origins,
    )


# Public settings instance
settings = _build_settings()
