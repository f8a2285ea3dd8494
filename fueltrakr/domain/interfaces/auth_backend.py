"""Interface for the hosted authentication provider.

Only password sign-in, token refresh and sign-out are needed; profile data
comes from the FuelTrakr backend API.
"""

import abc
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BackendSession:
    """Tokens issued by the authentication provider."""
    access_token: str
    refresh_token: Optional[str] = None


class AuthBackend(abc.ABC):
    """Abstract Base Class for authentication providers."""

    @abc.abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> BackendSession:
        """Exchanges credentials for a session.

        Raises:
            AuthFailure: If the credentials are rejected or no session is issued.
            TransportFailure: If the provider cannot be reached.
        """
        pass

    @abc.abstractmethod
    async def refresh_session(self, refresh_token: str) -> Optional[BackendSession]:
        """Obtains fresh tokens, or None if the refresh token is no longer valid."""
        pass

    @abc.abstractmethod
    async def sign_out(self) -> None:
        """Revokes the provider-side session."""
        pass
