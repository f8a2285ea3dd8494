from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from supabase import AuthError, AuthRetryableError

from fueltrakr.domain.errors import AuthFailure, TransportFailure
from fueltrakr.infrastructure.auth.supabase_auth import SupabaseAuthBackend


class RejectedCredentials(AuthError):
    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message


class Unreachable(AuthRetryableError):
    def __init__(self, message):
        Exception.__init__(self, message)
        self.message = message


def response(access_token="access", refresh_token="refresh"):
    if access_token is None:
        return SimpleNamespace(session=None)
    return SimpleNamespace(session=SimpleNamespace(access_token=access_token, refresh_token=refresh_token))


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def backend(client):
    return SupabaseAuthBackend("https://testproj.supabase.co", "anon-key", client=client)


@pytest.mark.asyncio
async def test_sign_in_returns_tokens(backend, client):
    client.auth.sign_in_with_password.return_value = response()

    session = await backend.sign_in_with_password("pat@example.com", "secret123")

    assert session.access_token == "access"
    assert session.refresh_token == "refresh"
    client.auth.sign_in_with_password.assert_called_once_with({"email": "pat@example.com", "password": "secret123"})


@pytest.mark.asyncio
async def test_rejected_credentials_raise_auth_failure(backend, client):
    client.auth.sign_in_with_password.side_effect = RejectedCredentials("Invalid login credentials")

    with pytest.raises(AuthFailure, match="Invalid login credentials"):
        await backend.sign_in_with_password("pat@example.com", "nope")


@pytest.mark.asyncio
async def test_retryable_error_raises_transport_failure(backend, client):
    client.auth.sign_in_with_password.side_effect = Unreachable("Failed to fetch")

    with pytest.raises(TransportFailure):
        await backend.sign_in_with_password("pat@example.com", "secret123")


@pytest.mark.asyncio
async def test_missing_session_is_an_auth_failure(backend, client):
    client.auth.sign_in_with_password.return_value = response(access_token=None)

    with pytest.raises(AuthFailure, match="No session created"):
        await backend.sign_in_with_password("pat@example.com", "secret123")


@pytest.mark.asyncio
async def test_refresh(backend, client):
    client.auth.refresh_session.return_value = response("new-access", "new-refresh")

    session = await backend.refresh_session("old-refresh")

    assert session.access_token == "new-access"
    client.auth.refresh_session.assert_called_once_with("old-refresh")


@pytest.mark.asyncio
async def test_rejected_refresh_returns_none(backend, client):
    client.auth.refresh_session.side_effect = RejectedCredentials("Invalid Refresh Token")

    assert await backend.refresh_session("old-refresh") is None


@pytest.mark.asyncio
async def test_sign_out(backend, client):
    await backend.sign_out()

    client.auth.sign_out.assert_called_once_with()


def test_client_is_created_lazily(mocker):
    create = mocker.patch("fueltrakr.infrastructure.auth.supabase_auth.create_client")
    backend = SupabaseAuthBackend("https://testproj.supabase.co", "anon-key")

    create.assert_not_called()
    assert backend.client is create.return_value
    assert backend.client is create.return_value
    create.assert_called_once_with("https://testproj.supabase.co", "anon-key")


@pytest.mark.asyncio
async def test_invalid_project_url_is_an_auth_failure():
    backend = SupabaseAuthBackend("testproj.supabase.co", "anon-key")

    with pytest.raises(AuthFailure, match="Invalid URL"):
        await backend.sign_in_with_password("pat@example.com", "secret123")
