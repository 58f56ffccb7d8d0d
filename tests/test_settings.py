from __future__ import annotations

from pathlib import Path

from taskboard.client import TaskboardClient
from taskboard.settings import Settings, normalize_database_url


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/tasks")
    monkeypatch.setenv("TASKBOARD_CREDENTIALS_FILE", str(tmp_path / "c.json"))
    monkeypatch.setenv("TASKBOARD_API_URL", "http://example.test:9000/")
    monkeypatch.setenv("TASKBOARD_LOG_LEVEL", "debug")
    monkeypatch.setenv("TASKBOARD_CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("PORT", "not-a-number")
    s = Settings.from_env()
    assert s.database_url == "postgresql+psycopg2://u:p@db:5432/tasks"
    assert s.credentials_file == tmp_path / "c.json"
    assert s.api_url == "http://example.test:9000"
    assert s.log_level == "DEBUG"
    assert s.cors_origins == ("http://a.test", "http://b.test")
    assert s.port == 8000
    assert s.log_dir is None


def test_defaults(monkeypatch):
    for name in ("DATABASE_URL", "TASKBOARD_CREDENTIALS_FILE", "TASKBOARD_LOG_DIR"):
        monkeypatch.delenv(name, raising=False)
    s = Settings.from_env()
    assert s.database_url == "sqlite:///./tasks.db"
    assert s.credentials_file == Path("credentials.json")


def test_normalize_leaves_other_urls_alone():
    assert normalize_database_url("sqlite:///x.db") == "sqlite:///x.db"
    assert normalize_database_url("postgresql+psycopg2://h/db") == "postgresql+psycopg2://h/db"


def test_client_from_settings():
    client = TaskboardClient.from_settings(Settings(api_url="http://example.test:9000"))
    try:
        assert client.http.base_url.host == "example.test"
        assert client.http.base_url.port == 9000
    finally:
        client.close()
