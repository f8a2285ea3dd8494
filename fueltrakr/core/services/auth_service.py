"""Core service for signing users up, in and out.

Tracks the authentication state of the running process and persists the
signed-in session through a ``SessionStore`` so later invocations can
restore it.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from fueltrakr.core.services.base import BaseService
from fueltrakr.core.services.demo_fixtures import (
    DEMO_CREDENTIALS,
    DEMO_TOKEN_PREFIX,
    DEMO_USERS,
    DEV_TOKEN_PREFIX,
    demo_token,
)
from fueltrakr.domain.errors import AuthFailure, FuelTrakrError, HttpStatusFailure, TransportFailure
from fueltrakr.domain.interfaces.auth_backend import AuthBackend
from fueltrakr.domain.interfaces.session_store import SessionStore
from fueltrakr.domain.models.result import Err, ErrorKind, Ok, ServiceResult
from fueltrakr.domain.models.user import AuthSession, User
from fueltrakr.domain.validation import SignUpForm, validate_data
from fueltrakr.infrastructure.config.settings import AppSettings
from fueltrakr.infrastructure.http.api_client import ApiClient

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = (
    "Invalid login credentials. Please check your email and password, "
    "or enable demo mode in your configuration."
)
INVALID_DEMO_CREDENTIALS_MESSAGE = "Invalid demo credentials. Please check your email and password."
SIGN_IN_NETWORK_MESSAGE = "Network error during sign in. Please check your connection or enable demo mode."


class AuthState(str, Enum):
    SIGNED_OUT = "signed_out"
    AUTHENTICATING = "authenticating"
    SIGNED_IN = "signed_in"


class AuthService(BaseService):
    """Authentication facade over demo fixtures or Supabase plus the backend API."""

    def __init__(
        self,
        settings: AppSettings,
        session_store: SessionStore,
        api_client: Optional[ApiClient] = None,
        auth_backend: Optional[AuthBackend] = None,
    ):
        super().__init__(settings, api_client)
        self.session_store = session_store
        self._auth_backend = auth_backend
        self._state = AuthState.SIGNED_OUT
        self._session: Optional[AuthSession] = None
        logger.info(f"AuthService initialized (demo_mode={self.demo_mode})")

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def current_session(self) -> Optional[AuthSession]:
        return self._session

    @property
    def auth_backend(self) -> AuthBackend:
        if self._auth_backend is None:
            raise RuntimeError("AuthService needs an AuthBackend outside demo mode")
        return self._auth_backend

    def _enter(self, session: Optional[AuthSession]) -> None:
        self._session = session
        self._state = AuthState.SIGNED_IN if session else AuthState.SIGNED_OUT

    # --- Sign up ---

    async def sign_up(self, email: str, password: str, name: str) -> ServiceResult[User]:
        """Creates a porter account."""
        form = validate_data(SignUpForm, {"email": email, "password": password, "name": name})
        if isinstance(form, Err):
            return form
        logger.info(f"Attempting user signup for {form.value.email}")

        if self.demo_mode:
            logger.debug("Demo mode: Creating mock user")
            return Ok(User(id="demo-new-user", email=form.value.email, name=form.value.name, role="porter"))

        try:
            data = await self.api.post("/signup", form.value.model_dump(), token=self.settings.supabase.anon_key)
        except TransportFailure as e:
            logger.error(f"Network error during signup: {e}")
            return self._err("Network error during signup", e)
        except FuelTrakrError as e:
            logger.warning(f"Signup failed: {e}")
            return self._err("Signup failed", e)

        if isinstance(data, dict) and data.get("error"):
            return Err(message=str(data["error"]), kind=ErrorKind.HTTP_STATUS)
        try:
            user = User.model_validate(data["user"] if isinstance(data, dict) and "user" in data else data)
        except ValidationError as e:
            logger.error(f"Unexpected signup response: {e}")
            return self._err("Signup failed: unexpected response from server", e, kind=ErrorKind.HTTP_STATUS)
        logger.info(f"Signup successful for {user.email}")
        return Ok(user)

    # --- Sign in ---

    async def sign_in(self, email: str, password: str) -> ServiceResult[AuthSession]:
        """Authenticates and remembers the session.

        State moves to AUTHENTICATING for the duration of the call and
        ends in SIGNED_IN or SIGNED_OUT.
        """
        self._state = AuthState.AUTHENTICATING
        logger.info(f"Attempting user signin for {email}")
        if self.demo_mode:
            result = self._demo_sign_in(email, password)
        else:
            result = await self._live_sign_in(email, password)

        if isinstance(result, Ok):
            self.session_store.save(result.value)
            self._enter(result.value)
            logger.info(f"Signin successful for {result.value.user.email} (role={result.value.user.role})")
        else:
            self._enter(None)
            logger.warning(f"Signin failed for {email}: {result.message}")
        return result

    def _demo_sign_in(self, email: str, password: str) -> ServiceResult[AuthSession]:
        normalized = email.strip().lower()
        expected = DEMO_CREDENTIALS.get(normalized)
        user = next((u for u in DEMO_USERS if u.email == normalized), None)
        if expected is None or expected != password or user is None:
            return Err(message=INVALID_DEMO_CREDENTIALS_MESSAGE, kind=ErrorKind.AUTH)
        return Ok(AuthSession(user=user, access_token=demo_token(user)))

    async def _live_sign_in(self, email: str, password: str) -> ServiceResult[AuthSession]:
        try:
            tokens = await self.auth_backend.sign_in_with_password(email, password)
        except AuthFailure as e:
            message = INVALID_CREDENTIALS_MESSAGE if "Invalid login credentials" in str(e) else str(e)
            return self._err(message, e)
        except TransportFailure as e:
            return self._err(SIGN_IN_NETWORK_MESSAGE, e)

        profile = await self._fetch_profile(tokens.access_token)
        if isinstance(profile, Err):
            return profile
        return Ok(AuthSession(
            user=profile.value, access_token=tokens.access_token, refresh_token=tokens.refresh_token,
        ))

    async def _fetch_profile(self, token: str) -> ServiceResult[User]:
        try:
            data = await self.api.get("/profile", token=token)
        except HttpStatusFailure as e:
            if e.status_code == 404:
                return self._err("User profile not found", e, kind=ErrorKind.NOT_FOUND)
            if e.status_code in (401, 403):
                return self._err("Session is no longer valid. Please sign in again", e, kind=ErrorKind.AUTH)
            return self._err("Failed to load user profile", e)
        except FuelTrakrError as e:
            return self._err("Network error while loading user profile", e)

        if not data:
            return Err(message="User profile not found", kind=ErrorKind.NOT_FOUND)
        try:
            return Ok(User.model_validate(data))
        except ValidationError as e:
            return self._err("Failed to load user profile: unexpected response", e, kind=ErrorKind.HTTP_STATUS)

    # --- Session lifecycle ---

    def _dev_session(self) -> AuthSession:
        role = self.settings.default_user_role
        user = User(
            id=f"dev-{role}-user",
            email=f"{role}@napleton.com",
            name=f"Development {role.title()} User",
            role=role,
        )
        return AuthSession(user=user, access_token=f"{DEV_TOKEN_PREFIX}{role}")

    async def restore_session(self) -> Optional[AuthSession]:
        """Recovers a previous session, or returns None. Never raises.

        With auth skipping and auto-login on, a development session is
        synthesized. In live mode the stored token is re-validated against
        the profile endpoint, refreshing it once if it has expired.
        """
        if self.settings.skip_auth and self.settings.auto_login:
            session = self._dev_session()
            logger.info(f"Auth skipped: using development {session.user.role} session")
            self._enter(session)
            return session

        try:
            stored = self.session_store.load()
        except Exception as e:
            # A corrupt store must not block startup
            logger.warning(f"Failed to read stored session: {e}")
            stored = None
        if stored is None:
            logger.debug("No stored session found")
            self._enter(None)
            return None

        is_demo_token = stored.access_token.startswith(DEMO_TOKEN_PREFIX)
        if self.demo_mode:
            self._enter(stored if is_demo_token else None)
            return self._session
        if is_demo_token:
            logger.debug("Ignoring demo session in live mode")
            self._enter(None)
            return None

        try:
            session = await self._revalidate(stored)
        except Exception as e:
            logger.warning(f"Failed to restore session: {e}")
            session = None
        self._enter(session)
        return session

    async def _revalidate(self, stored: AuthSession) -> Optional[AuthSession]:
        profile = await self._fetch_profile(stored.access_token)
        if isinstance(profile, Ok):
            session = stored.model_copy(update={"user": profile.value})
            self.session_store.save(session)
            return session
        if profile.kind != ErrorKind.AUTH or not stored.refresh_token:
            logger.debug(f"Stored session rejected: {profile.message}")
            return None

        tokens = await self.auth_backend.refresh_session(stored.refresh_token)
        if tokens is None:
            return None
        profile = await self._fetch_profile(tokens.access_token)
        if isinstance(profile, Err):
            return None
        session = AuthSession(user=profile.value, access_token=tokens.access_token, refresh_token=tokens.refresh_token)
        self.session_store.save(session)
        logger.debug("Session restored after token refresh")
        return session

    async def sign_out(self) -> None:
        """Forgets the session. Provider-side failures are only logged."""
        logger.info("User signing out")
        if not self.demo_mode and self._auth_backend is not None:
            try:
                await self._auth_backend.sign_out()
            except FuelTrakrError as e:
                logger.warning(f"Provider sign-out failed: {e}")
        self.session_store.clear()
        self._enter(None)

    async def refresh_token(self) -> Optional[str]:
        """Exchanges the refresh token for a new access token (live mode only)."""
        if self.demo_mode:
            return None
        session = self._session or self.session_store.load()
        if session is None or not session.refresh_token:
            logger.debug("No refresh token available")
            return None
        try:
            tokens = await self.auth_backend.refresh_session(session.refresh_token)
        except FuelTrakrError as e:
            logger.warning(f"Token refresh failed: {e}")
            return None
        if tokens is None:
            logger.warning("Token refresh rejected")
            return None

        refreshed = session.model_copy(update={
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token or session.refresh_token,
        })
        self.session_store.save(refreshed)
        self._enter(refreshed)
        logger.debug("Token refreshed successfully")
        return refreshed.access_token
