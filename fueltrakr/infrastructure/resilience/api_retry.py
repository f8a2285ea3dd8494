"""Service for executing backend HTTP calls with automatic retries.

Implements capped exponential backoff for transient failures such as
dropped connections or timeouts. Attempts run strictly one after another;
the delay before attempt ``k`` (``k >= 1``) is
``min(base_delay_ms * 2**k, max_delay_ms)``.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

import httpx

from fueltrakr.domain.constants import (
    DEFAULT_API_TIMEOUT_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY_MS,
    DEFAULT_RETRY_MAX_DELAY_MS,
)
from fueltrakr.domain.errors import FuelTrakrError, HttpStatusFailure, ProtocolFailure, TransportFailure
from fueltrakr.domain.events.api_events import (
    DomainEvent,
    RequestAttempted,
    RequestFailed,
    RequestSucceeded,
    RetryScheduled,
)

logger = logging.getLogger(__name__)

# --- Retry Predicates ---
NETWORK_KEYWORDS = ("network", "failed to fetch", "connection")
TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def is_network_error(error: BaseException) -> bool:
    """Default predicate: only connectivity failures are worth another attempt.

    Status failures count only when their text (``HTTP <status>: <body>``)
    names a network problem.
    """
    if isinstance(error, TransportFailure):
        return True
    if isinstance(error, ProtocolFailure):
        return False
    text = str(error).lower()
    return any(keyword in text for keyword in NETWORK_KEYWORDS)


def retry_transient_statuses(error: BaseException) -> bool:
    """Opt-in predicate that also retries rate limiting and 5xx responses."""
    if isinstance(error, HttpStatusFailure) and error.status_code in TRANSIENT_STATUS_CODES:
        return True
    return is_network_error(error)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times, and how patiently, a request is re-attempted."""
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_ms: int = DEFAULT_RETRY_BASE_DELAY_MS
    max_delay_ms: int = DEFAULT_RETRY_MAX_DELAY_MS
    is_retryable: Callable[[BaseException], bool] = is_network_error

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay_ms <= 0:
            raise ValueError(f"base_delay_ms must be > 0, got {self.base_delay_ms}")
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError(
                f"max_delay_ms ({self.max_delay_ms}) must be >= base_delay_ms ({self.base_delay_ms})"
            )

    def delay_ms(self, attempt: int) -> int:
        return compute_delay(attempt, self)


def compute_delay(attempt: int, policy: RetryPolicy) -> int:
    """Milliseconds to wait before ``attempt`` (1-based retry number)."""
    if attempt < 1:
        return 0
    return min(policy.base_delay_ms * (2 ** attempt), policy.max_delay_ms)


@dataclass(frozen=True)
class RequestSpec:
    """A single HTTP call, replayable across attempts.

    ``raw`` asks for the response body as bytes instead of decoded JSON.
    """
    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    json: Any = None
    files: Optional[Dict[str, Any]] = None
    params: Optional[Dict[str, Any]] = None
    raw: bool = False


@dataclass(frozen=True)
class Succeeded:
    payload: Any
    attempts: int


@dataclass(frozen=True)
class Failed:
    error: FuelTrakrError
    last_attempt: int


RequestOutcome = Union[Succeeded, Failed]


# --- Retry Service ---

class ApiRetryService:
    """Executes requests over one ``httpx.AsyncClient`` with retry and backoff."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        default_policy: Optional[RetryPolicy] = None,
        timeout_ms: int = DEFAULT_API_TIMEOUT_MS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initializes the ApiRetryService.

        Args:
            client: HTTP client to send requests with. One is created (and
                owned) when omitted.
            default_policy: Policy used when ``execute`` gets none.
            timeout_ms: Per-attempt timeout for the owned client.
            sleep: Coroutine used to wait between attempts.
        """
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_ms / 1000))
        self.default_policy = default_policy or RetryPolicy()
        self._sleep = sleep
        logger.info(
            f"ApiRetryService initialized: max_retries={self.default_policy.max_retries}, "
            f"base_delay={self.default_policy.base_delay_ms}ms, max_delay={self.default_policy.max_delay_ms}ms"
        )

    def _dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")

    async def execute(self, spec: RequestSpec, policy: Optional[RetryPolicy] = None) -> RequestOutcome:
        """Sends ``spec`` until it succeeds, fails terminally or retries run out.

        Never raises for request failures; the last classified error is
        returned inside ``Failed``. ``asyncio.CancelledError`` propagates.
        """
        policy = policy or self.default_policy
        attempt = 0
        while True:
            if attempt > 0:
                delay = policy.delay_ms(attempt)
                self._dispatch(RetryScheduled(method=spec.method, url=spec.url, attempt_number=attempt, delay_ms=delay))
                await self._sleep(delay / 1000)

            self._dispatch(RequestAttempted(method=spec.method, url=spec.url, attempt=attempt))
            start_time = time.perf_counter()
            try:
                status_code, payload = await self._attempt(spec)
            except FuelTrakrError as e:
                will_retry = attempt < policy.max_retries and policy.is_retryable(e)
                self._dispatch(RequestFailed(
                    method=spec.method,
                    url=spec.url,
                    attempt=attempt,
                    error_type=type(e).__name__,
                    error_message=str(e),
                    will_retry=will_retry,
                ))
                if will_retry:
                    logger.warning(
                        f"{spec.method} {spec.url} failed on attempt {attempt + 1}/{policy.max_retries + 1}: "
                        f"{type(e).__name__}. Retrying..."
                    )
                    attempt += 1
                    continue
                logger.error(f"{spec.method} {spec.url} failed after {attempt + 1} attempt(s): {e}")
                return Failed(error=e, last_attempt=attempt)

            latency_ms = (time.perf_counter() - start_time) * 1000
            self._dispatch(RequestSucceeded(
                method=spec.method, url=spec.url, attempt=attempt, latency_ms=latency_ms, status_code=status_code,
            ))
            return Succeeded(payload=payload, attempts=attempt + 1)

    async def _attempt(self, spec: RequestSpec):
        try:
            response = await self.client.request(
                spec.method,
                spec.url,
                headers=dict(spec.headers),
                json=spec.json,
                files=spec.files,
                params=spec.params,
            )
        except httpx.TransportError as e:
            raise TransportFailure(f"Network error: {str(e) or type(e).__name__}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            # Retrying cannot repair a malformed URL or response
            raise ProtocolFailure(f"Invalid HTTP exchange: {str(e) or type(e).__name__}") from e

        if not response.is_success:
            raise HttpStatusFailure(response.status_code, response.text)
        return response.status_code, self._decode(response, spec.raw)

    @staticmethod
    def _decode(response: httpx.Response, raw: bool) -> Any:
        if raw:
            return response.content
        if not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return response.content

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
