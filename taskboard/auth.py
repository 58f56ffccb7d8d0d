"""Username/passcode gate in front of the task pages.

Passcodes are compared by digest against a short list read from a static
JSON file::

    {"users": [{"username": "test", "passcode": "<sha256 hex>"}]}

This only decides which username the UI runs as; the API does not check it.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import bcrypt

from .session import UserContext
from .settings import Settings

logger = logging.getLogger(__name__)

INVALID_LOGIN = "Invalid username or passcode"


class AuthState(str, Enum):
    LOGGED_OUT = "LOGGED_OUT"
    LOGGED_IN = "LOGGED_IN"


def _prehash(passcode: str) -> bytes:
    return hashlib.sha256(passcode.encode("utf-8")).digest()


def hash_passcode(passcode: str) -> str:
    """SHA-256 hex digest; the format stored in the credentials file."""
    return _prehash(passcode).hex()


def hash_passcode_bcrypt(passcode: str, rounds: int = 12) -> str:
    # bcrypt over the SHA-256 prehash sidesteps bcrypt's 72-byte input limit.
    return bcrypt.hashpw(_prehash(passcode), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_passcode(passcode: str, digest: str) -> bool:
    """Check a passcode against a stored SHA-256 hex digest or bcrypt hash."""
    if digest.startswith("$2"):
        try:
            return bcrypt.checkpw(_prehash(passcode), digest.encode("utf-8"))
        except ValueError:
            return False
    return hmac.compare_digest(hash_passcode(passcode), digest.strip().lower())


@dataclass(frozen=True)
class Credential:
    username: str
    passcode: str


# Development login used when no credentials file is available: test / 1234.
FALLBACK_CREDENTIAL = Credential(
    username="test",
    passcode="03ac674216f3e15c761ee1a5e255f067953623c8b388b4459e13f978d7c846f4",
)


def load_credentials(path: Optional[Path]) -> List[Credential]:
    """Read the ``users`` list; any problem with the file yields the fallback credential."""
    if path is None or not Path(path).exists():
        logger.warning("Credentials file %s not found; using development credential", path)
        return [FALLBACK_CREDENTIAL]
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8") or "{}")
    except (OSError, ValueError) as exc:
        logger.error("Could not read credentials file %s: %s", path, exc)
        return [FALLBACK_CREDENTIAL]
    users = data.get("users") if isinstance(data, dict) else None
    creds = [
        Credential(username=u["username"], passcode=u["passcode"])
        for u in (users or [])
        if isinstance(u, dict) and isinstance(u.get("username"), str) and isinstance(u.get("passcode"), str)
    ]
    if not creds:
        logger.warning("Credentials file %s has no users; using development credential", path)
        return [FALLBACK_CREDENTIAL]
    return creds


class AuthGate:
    """LOGGED_OUT / LOGGED_IN switch backed by the shared UserContext.

    A failed attempt sets ``error`` and leaves the caller's inputs alone.
    """

    def __init__(self, context: UserContext, credentials_file: Optional[Path] = None) -> None:
        self.context = context
        self.credentials_file = credentials_file
        self.credentials: List[Credential] = []
        self.error: Optional[str] = None

    @classmethod
    def from_settings(cls, context: UserContext, settings: Settings) -> "AuthGate":
        return cls(context, settings.credentials_file)

    def load(self) -> None:
        self.credentials = load_credentials(self.credentials_file)

    @property
    def state(self) -> AuthState:
        return AuthState.LOGGED_IN if self.context.logged_in else AuthState.LOGGED_OUT

    def login(
        self,
        username: str,
        passcode: str,
        on_success: Optional[Callable[[str], None]] = None,
    ) -> bool:
        if not self.credentials:
            self.load()
        match = next(
            (c for c in self.credentials if c.username == username and verify_passcode(passcode, c.passcode)),
            None,
        )
        if match is None:
            logger.info("Failed login for %r", username)
            self.error = INVALID_LOGIN
            return False
        self.error = None
        self.context.set_username(match.username)
        logger.info("Login successful: %s", match.username)
        if on_success is not None:
            on_success(match.username)
        return True

    def logout(self) -> None:
        self.context.clear()
        self.error = None
