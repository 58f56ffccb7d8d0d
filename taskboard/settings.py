"""Settings loaded from environment variables.

One frozen Settings object per process; nothing here needs secrets.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


def _env(name: str, default: str) -> str:
    v = os.getenv(name, "").strip()
    return v or default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name, "").strip()
    return Path(raw).expanduser() if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return list(default)
    return [p.strip() for p in raw.split(",") if p.strip()]


def normalize_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./tasks.db"
    credentials_file: Path = Path("credentials.json")
    storage_file: Path = Path("~/.taskboard/storage.json").expanduser()
    api_url: str = "http://127.0.0.1:8000"
    log_level: str = "INFO"
    log_dir: Optional[Path] = None
    cors_origins: tuple = ("*",)
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        log_dir = os.getenv("TASKBOARD_LOG_DIR", "").strip()
        return cls(
            database_url=normalize_database_url(_env("DATABASE_URL", cls.database_url)),
            credentials_file=_env_path("TASKBOARD_CREDENTIALS_FILE", cls.credentials_file),
            storage_file=_env_path("TASKBOARD_STORAGE_FILE", cls.storage_file),
            api_url=_env("TASKBOARD_API_URL", cls.api_url).rstrip("/"),
            log_level=_env("TASKBOARD_LOG_LEVEL", cls.log_level).upper(),
            log_dir=Path(log_dir).expanduser() if log_dir else None,
            cors_origins=tuple(_env_list("TASKBOARD_CORS_ORIGINS", list(cls.cors_origins))),
            host=_env("HOST", cls.host),
            port=_env_int("PORT", cls.port),
        )
