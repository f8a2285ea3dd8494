"""Interface for persisting the signed-in session between invocations."""

import abc
from typing import Optional

from fueltrakr.domain.models.user import AuthSession


class SessionStore(abc.ABC):
    """Abstract Base Class for session persistence."""

    @abc.abstractmethod
    def load(self) -> Optional[AuthSession]:
        """Returns the stored session, or None if there is none (or it is unreadable)."""
        pass

    @abc.abstractmethod
    def save(self, session: AuthSession) -> None:
        """Stores the session, replacing any previous one."""
        pass

    @abc.abstractmethod
    def clear(self) -> None:
        """Forgets the stored session."""
        pass
