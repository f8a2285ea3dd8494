"""Exception taxonomy for FuelTrakr.

Infrastructure adapters raise these; application services translate them
into ``Err`` results so they never reach the user as stack traces.
"""

import json
from typing import List, Optional

from fueltrakr.domain.models.result import ErrorKind


class FuelTrakrError(Exception):
    """Base class for all classified FuelTrakr failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT


class TransportFailure(FuelTrakrError):
    """Connectivity, DNS or timeout failure; the request never got an answer."""

    kind = ErrorKind.TRANSPORT


class HttpStatusFailure(FuelTrakrError):
    """The server answered with a non-2xx status."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body or 'Unknown error'}")

    @property
    def server_message(self) -> Optional[str]:
        """The ``error`` field of a JSON error body, if the server sent one."""
        try:
            data = json.loads(self.body)
        except ValueError:
            return None
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return None


class ValidationFailure(FuelTrakrError):
    """Caller-supplied data violates a documented constraint."""

    kind = ErrorKind.VALIDATION

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")


class AuthFailure(FuelTrakrError):
    """Bad credentials or missing session."""

    kind = ErrorKind.AUTH


class ProtocolFailure(FuelTrakrError):
    """The request could not be sent or its response could not be read."""

    kind = ErrorKind.HTTP_STATUS


class ConfigurationError(ValueError):
    """A configuration value is missing or malformed."""
