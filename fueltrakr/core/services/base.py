"""Shared plumbing for the dual-mode application services.

Every service receives the resolved ``AppSettings`` at construction time.
Demo mode answers from in-process fixtures; live mode goes through the
``ApiClient``. Either way, failures come back as ``Err`` results.
"""

import logging
from typing import Optional

from fueltrakr.domain.errors import FuelTrakrError, HttpStatusFailure, ValidationFailure
from fueltrakr.domain.models.result import Err, ErrorKind
from fueltrakr.infrastructure.config.settings import AppSettings
from fueltrakr.infrastructure.http.api_client import ApiClient

logger = logging.getLogger(__name__)


class BaseService:
    """Base for services that switch between fixtures and the backend."""

    def __init__(self, settings: AppSettings, api_client: Optional[ApiClient] = None):
        self.settings = settings
        self._api_client = api_client

    @property
    def demo_mode(self) -> bool:
        return self.settings.demo_mode

    @property
    def api(self) -> ApiClient:
        if self._api_client is None:
            raise RuntimeError(f"{type(self).__name__} needs an ApiClient outside demo mode")
        return self._api_client

    def _err(self, message: str, error: Optional[Exception] = None, kind: Optional[ErrorKind] = None) -> Err:
        """Builds a user-facing failure result.

        Validation errors keep their own text. A server-supplied ``error``
        field is appended to ``message``. The raw error text is attached as
        ``detail`` only in debug mode.
        """
        if isinstance(error, ValidationFailure):
            message = str(error)
        elif isinstance(error, HttpStatusFailure) and error.server_message:
            message = f"{message}: {error.server_message}"

        if kind is None:
            kind = error.kind if isinstance(error, FuelTrakrError) else ErrorKind.TRANSPORT
        detail = None
        if error is not None and self.settings.debug_mode:
            detail = f"{type(error).__name__}: {error}"
        return Err(message=message, kind=kind, detail=detail)
