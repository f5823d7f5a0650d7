"""Pytest configuration and fixtures for HTTP integration tests."""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from src.core.config import settings
from src.main import app
from tests.integration.headers import ACCOUNT_HEADERS


@pytest.fixture
def client(tmp_path, monkeypatch) -> Generator[TestClient]:
    """FastAPI test client running the app lifespan against a temporary database."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "api.db"))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def member_id(client: TestClient) -> str:
    """Create the household's first family member."""
    response = client.post("/family-members", json={"name": "Alex", "colorTag": "#FF8800"}, headers=ACCOUNT_HEADERS)
    assert response.status_code == 201
    return response.json()["id"]
