from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from taskboard.client import TaskboardClient
from taskboard.main import create_app
from taskboard.session import MemoryStorage, UserContext
from taskboard.settings import Settings

from .fakes import days_from_today


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every path at the per-test tmp dir."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'tasks.db'}",
        credentials_file=tmp_path / "credentials.json",
        storage_file=tmp_path / "storage.json",
    )


@pytest.fixture()
def app(settings: Settings) -> FastAPI:
    app = create_app(settings)
    yield app
    app.state.store.dispose()


@pytest.fixture()
def http(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def api(http: TestClient) -> TaskboardClient:
    return TaskboardClient(http=http)


@pytest.fixture()
def category(http: TestClient) -> dict:
    r = http.post("/api/categories", json={"name": "Work"})
    assert r.status_code == 201
    return r.json()


@pytest.fixture()
def make_task(http: TestClient, category: dict):
    def _make(**overrides) -> dict:
        body = {
            "name": "Write report",
            "description": "Quarterly numbers",
            "duedate": days_from_today(3),
            "owner": "alice",
            "categoryId": category["id"],
        }
        body.update(overrides)
        r = http.post("/api/tasks", json=body)
        assert r.status_code == 201, r.text
        return r.json()

    return _make


@pytest.fixture()
def context() -> UserContext:
    return UserContext(MemoryStorage())
