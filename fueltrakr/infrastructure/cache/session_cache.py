"""Disk-backed session store.

Keeps the signed-in session between CLI invocations in a ``diskcache``
directory, the way a browser keeps it in local storage.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import diskcache as dc
from pydantic import ValidationError

from fueltrakr.domain.interfaces.session_store import SessionStore
from fueltrakr.domain.models.user import AuthSession

logger = logging.getLogger(__name__)

SESSION_KEY = "auth_session"
DEFAULT_SESSION_TTL_SECONDS = 60 * 60 * 24 * 7  # 7 days


class DiskSessionStore(SessionStore):
    """Persists one ``AuthSession`` under a fixed key with a TTL."""

    def __init__(self, directory: Union[str, Path], ttl_seconds: Optional[int] = DEFAULT_SESSION_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self.cache = dc.Cache(str(directory), timeout=1)
        logger.info(f"Initialized session store at: {self.cache.directory} (ttl={ttl_seconds}s)")

    def load(self) -> Optional[AuthSession]:
        data = self.cache.get(SESSION_KEY)
        if data is None:
            return None
        try:
            return AuthSession.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable stored session: {e}")
            self.cache.delete(SESSION_KEY)
            return None

    def save(self, session: AuthSession) -> None:
        self.cache.set(SESSION_KEY, session.model_dump(), expire=self.ttl_seconds)
        logger.debug(f"Stored session for user {session.user.id}")

    def clear(self) -> None:
        self.cache.delete(SESSION_KEY)
        logger.debug("Cleared stored session")

    def close(self) -> None:
        self.cache.close()


class MemorySessionStore(SessionStore):
    """Process-local store used when no session directory is wanted."""

    def __init__(self, session: Optional[AuthSession] = None):
        self._session = session

    def load(self) -> Optional[AuthSession]:
        return self._session

    def save(self, session: AuthSession) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None
