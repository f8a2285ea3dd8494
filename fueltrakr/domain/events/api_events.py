"""Domain Events related to backend API calls and resilience.

Emitted by the request executor for each attempt, retry decision and
final outcome. They are purely observational.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""


@dataclass
class RequestAttempted(DomainEvent):
    """Event triggered right before an attempt is sent."""
    method: str
    url: str
    attempt: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestSucceeded(DomainEvent):
    """Event triggered when an attempt returns a 2xx response."""
    method: str
    url: str
    attempt: int
    latency_ms: float
    status_code: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RequestFailed(DomainEvent):
    """Event triggered when an attempt fails, whether or not it will be retried."""
    method: str
    url: str
    attempt: int
    error_type: str
    error_message: str
    will_retry: bool
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when the executor is about to sleep before the next attempt."""
    method: str
    url: str
    attempt_number: int
    delay_ms: int
    timestamp: float = field(default_factory=time.time)
