"""HTTP layer: FastAPI application, routers and error mapping."""

from .app import create_app

__all__ = ["create_app"]
