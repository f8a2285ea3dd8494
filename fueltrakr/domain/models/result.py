"""Service result type: the two-case contract every service method returns.

A result is either ``Ok(value)`` or ``Err(message, kind)``, never both.
Callers branch on ``result.ok`` (or ``isinstance``) instead of catching
exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Category of a failure, shared by exceptions and ``Err`` results."""

    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    VALIDATION = "validation"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    LOCAL_IO = "local_io"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the operation's value."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying a short, user-facing message.

    Attributes:
        message: Actionable description suitable for display.
        kind: Failure category.
        detail: Underlying error text, only populated in debug mode.
    """

    message: str
    kind: ErrorKind
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return False


ServiceResult = Union[Ok[T], Err]
