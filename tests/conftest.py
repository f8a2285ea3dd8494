import os
from pathlib import Path
from typing import Callable, List
from unittest.mock import AsyncMock

import httpx
import pytest
from typer.testing import CliRunner

from fueltrakr.infrastructure.cache.session_cache import MemorySessionStore
from fueltrakr.infrastructure.config.settings import AppSettings, SupabaseSettings
from fueltrakr.infrastructure.http.api_client import ApiClient
from fueltrakr.infrastructure.resilience.api_retry import ApiRetryService, RetryPolicy

BASE_URL = "https://testproj.supabase.co/functions/v1/make-server-218dc5b7"


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path: Path):
    """Keeps tests away from the developer's real configuration and session."""
    for key in list(os.environ):
        if key.startswith("FUELTRAKR_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("FUELTRAKR_CONFIG_FILE", str(tmp_path / "missing-config.yaml"))
    monkeypatch.setenv("FUELTRAKR_SESSION_DIR", str(tmp_path / "session"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def demo_settings() -> AppSettings:
    return AppSettings(demo_mode=True)


@pytest.fixture
def live_settings() -> AppSettings:
    return AppSettings(
        demo_mode=False,
        supabase=SupabaseSettings(project_id="testproj", anon_key="anon-key"),
    )


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def recorded_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def api_client_factory(recorded_requests) -> Callable[..., ApiClient]:
    """Builds an ApiClient whose requests are answered by ``handler``.

    Every request is appended to ``recorded_requests``; retries never sleep.
    """
    def factory(handler: Callable[[httpx.Request], httpx.Response], max_retries: int = 0) -> ApiClient:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            return handler(request)

        executor = ApiRetryService(
            client=httpx.AsyncClient(transport=httpx.MockTransport(recording_handler)),
            default_policy=RetryPolicy(max_retries=max_retries),
            sleep=AsyncMock(),
        )
        return ApiClient(BASE_URL, executor)

    return factory
