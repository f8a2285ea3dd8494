"""Supabase implementation of the AuthBackend interface.

The supabase client is synchronous; calls run in a worker thread so the
event loop stays responsive.
"""

import asyncio
import logging
from typing import Optional

from supabase import AuthError, AuthRetryableError, Client, SupabaseException, create_client

from fueltrakr.domain.errors import AuthFailure, TransportFailure
from fueltrakr.domain.interfaces.auth_backend import AuthBackend, BackendSession

logger = logging.getLogger(__name__)


class SupabaseAuthBackend(AuthBackend):
    """Password authentication against a Supabase project."""

    def __init__(self, url: str, anon_key: str, client: Optional[Client] = None):
        self.url = url
        self._anon_key = anon_key
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            try:
                self._client = create_client(self.url, self._anon_key)
            except SupabaseException as e:
                raise AuthFailure(f"Invalid authentication service settings ({self.url!r}): {e.message}") from e
            logger.info(f"Created Supabase client for {self.url}")
        return self._client

    @staticmethod
    def _translate(error: AuthError) -> Exception:
        if isinstance(error, AuthRetryableError):
            return TransportFailure(f"Network error: {error.message}")
        return AuthFailure(error.message)

    async def sign_in_with_password(self, email: str, password: str) -> BackendSession:
        try:
            response = await asyncio.to_thread(
                self.client.auth.sign_in_with_password,
                {"email": email, "password": password},
            )
        except AuthError as e:
            logger.debug(f"Supabase sign-in rejected: {e}")
            raise self._translate(e) from e

        session = response.session
        if session is None or not session.access_token:
            raise AuthFailure("No session created")
        return BackendSession(access_token=session.access_token, refresh_token=session.refresh_token)

    async def refresh_session(self, refresh_token: str) -> Optional[BackendSession]:
        try:
            response = await asyncio.to_thread(self.client.auth.refresh_session, refresh_token)
        except AuthRetryableError as e:
            raise TransportFailure(f"Network error: {e.message}") from e
        except AuthError as e:
            logger.info(f"Token refresh rejected: {e.message}")
            return None

        session = response.session
        if session is None:
            return None
        return BackendSession(access_token=session.access_token, refresh_token=session.refresh_token)

    async def sign_out(self) -> None:
        try:
            await asyncio.to_thread(self.client.auth.sign_out)
        except AuthError as e:
            raise self._translate(e) from e
