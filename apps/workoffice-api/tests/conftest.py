"""Shared fixtures for workoffice-api tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from starlette.testclient import TestClient
from workoffice_api import create_app
from workoffice_persistence import ConnectionManager, ConnectionProfile


@pytest.fixture()
def connections(tmp_path: Path) -> ConnectionManager:
    """A single SQLite profile in a temp directory that creates its own schema."""
    profile = ConnectionProfile(
        url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        create_schema=True,
        max_retry_count=0,
    )
    return ConnectionManager(profiles={"default": profile})


@pytest.fixture()
def client(connections: ConnectionManager):
    """TestClient with startup and shutdown run around the test."""
    with TestClient(create_app(connections)) as test_client:
        yield test_client


@pytest.fixture()
def worker_payload() -> dict[str, Any]:
    return {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "dateOfBirth": "1990-12-10",
        "city": "London",
        "country": "UK",
        "homeAddress": "12 St James's Square",
        "cellphoneNumber": "+44 20 7946 0000",
        "emailAddress": "ada@example.com",
        "workerType": "Employee",
    }


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of configuration loading."""
    monkeypatch.delenv("WORKOFFICE_DATABASE_URL", raising=False)
    monkeypatch.delenv("WORKOFFICE_ROOT", raising=False)
    monkeypatch.delenv("CORS_ORIGINS", raising=False)
