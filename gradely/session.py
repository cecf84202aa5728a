"""
Per-browser session settings.

Sessions are addressed by the `gradelySession` cookie. The store is an
injected interface so a shared backend can replace the in-memory one
when more than one server process runs. Writes are last-write-wins.
"""

import uuid
from typing import Dict, Optional, Protocol

from gradely.models import SessionConfig


SESSION_COOKIE = "gradelySession"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days


class SessionStore(Protocol):
    def get(self, session_id: str) -> Optional[SessionConfig]:
        ...

    def set(self, session_id: str, config: SessionConfig) -> None:
        ...


class InMemorySessionStore:
    """Process-local session table."""

    def __init__(self):
        self._sessions: Dict[str, SessionConfig] = {}

    def get(self, session_id: str) -> Optional[SessionConfig]:
        config = self._sessions.get(session_id)
        return config.model_copy() if config else None

    def set(self, session_id: str, config: SessionConfig) -> None:
        self._sessions[session_id] = config.model_copy()


def new_session_id() -> str:
    return str(uuid.uuid4())


def load_session(store: SessionStore, session_id: Optional[str]):
    """Return (session_id, config), creating an empty session when needed."""
    if not session_id:
        session_id = new_session_id()
    config = store.get(session_id)
    if config is None:
        config = SessionConfig()
        store.set(session_id, config)
    return session_id, config


def mask_key(key: Optional[str]) -> str:
    """Show only the first and last four characters of a credential."""
    if not key:
        return "not set"
    if len(key) <= 8:
        return "••••"
    return f"{key[:4]}••••{key[-4:]}"
