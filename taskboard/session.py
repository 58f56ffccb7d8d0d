"""Logged-in identity shared by the login form, task table and task forms.

``UserContext`` is the only place the current username lives. It reads the
durable copy once, when it is built, and writes every change straight back.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

from .settings import Settings

logger = logging.getLogger(__name__)

USERNAME_KEY = "username"

Listener = Callable[[str], None]


class LocalStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Per-process storage; gone when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStorage:
    """Key/value strings kept in a small JSON file, like a browser's localStorage.

    Read and write failures are logged and treated as an empty store; losing
    the remembered username only means logging in again.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            logger.warning("Could not read %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write %s: %s", self.path, exc)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class UserContext:
    """Current username with an explicit subscribe/update contract."""

    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage
        self._username = storage.get(USERNAME_KEY) or ""
        self._listeners: List[Listener] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> "UserContext":
        return cls(JsonFileStorage(settings.storage_file))

    @property
    def username(self) -> str:
        return self._username

    @property
    def logged_in(self) -> bool:
        return bool(self._username)

    def set_username(self, username: Optional[str]) -> None:
        username = (username or "").strip()
        if username == self._username:
            return
        self._username = username
        if username:
            self._storage.set(USERNAME_KEY, username)
        else:
            self._storage.remove(USERNAME_KEY)
        for listener in list(self._listeners):
            listener(username)

    def clear(self) -> None:
        self.set_username("")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(username)`` on every change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
