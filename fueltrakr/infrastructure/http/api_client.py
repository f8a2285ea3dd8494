"""Thin client for the FuelTrakr backend function.

Every call goes through the retry executor. Failures surface as the
classified ``FuelTrakrError`` subclasses; the services decide what the
user sees.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from fueltrakr.infrastructure.resilience.api_retry import (
    ApiRetryService,
    Failed,
    RequestSpec,
    RetryPolicy,
)

logger = logging.getLogger(__name__)


class ApiClient:
    """Builds authenticated requests against ``base_url`` and unwraps outcomes."""

    def __init__(
        self,
        base_url: str,
        executor: ApiRetryService,
        default_headers: Optional[Mapping[str, str]] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.executor = executor
        self.default_headers = dict(default_headers or {})
        self.policy = policy

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, token: Optional[str], json_body: bool) -> Dict[str, str]:
        headers = dict(self.default_headers)
        if json_body:
            headers["Content-Type"] = "application/json"
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json: Any = None,
        files: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        raw: bool = False,
    ) -> Any:
        """Sends one logical request (with retries) and returns the payload.

        Raises:
            FuelTrakrError: The classified failure of the final attempt.
        """
        spec = RequestSpec(
            method=method,
            url=self._url(path),
            headers=self._headers(token, json_body=json is not None),
            json=json,
            files=files,
            params=params,
            raw=raw,
        )
        outcome = await self.executor.execute(spec, self.policy)
        if isinstance(outcome, Failed):
            raise outcome.error
        logger.debug(f"{method} {path} succeeded after {outcome.attempts} attempt(s)")
        return outcome.payload

    async def get(self, path: str, token: Optional[str] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, token=token, params=params)

    async def post(self, path: str, data: Any = None, token: Optional[str] = None) -> Any:
        return await self.request("POST", path, token=token, json=data)

    async def put(self, path: str, data: Any = None, token: Optional[str] = None) -> Any:
        return await self.request("PUT", path, token=token, json=data)

    async def delete(self, path: str, token: Optional[str] = None) -> Any:
        return await self.request("DELETE", path, token=token)

    async def upload(self, path: str, files: Dict[str, Any], token: Optional[str] = None) -> Any:
        """Multipart POST; httpx sets the boundary Content-Type itself."""
        return await self.request("POST", path, token=token, files=files)

    async def download(self, path: str, token: Optional[str] = None) -> bytes:
        return await self.request("GET", path, token=token, raw=True)
