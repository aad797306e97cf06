# mypy: ignore-errors

from __future__ import annotations

from typing import Iterator

import pytest
from api_helpers import bearer, create_user
from fastapi.testclient import TestClient

from team_presence.api.app import create_app
from team_presence.config.settings import Settings


@pytest.fixture
def client() -> Iterator[TestClient]:
    app = create_app(Settings(database_url="sqlite:///:memory:", jwt_secret="api-test-secret"))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin(client: TestClient) -> dict[str, str]:
    return bearer(create_user(client, "admin@example.com", "Admin", role="admin"))
