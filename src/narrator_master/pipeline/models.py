"""Domain models for the outbound request pipeline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class FailureClass(str, Enum):
    """Normalized failure classes used by retry policy."""

    RATE_LIMITED = "rate_limited"
    SERVER_TRANSIENT = "server_transient"
    NETWORK_TRANSIENT = "network_transient"
    BAD_REQUEST = "bad_request"
    ACCESS_OR_AUTH = "access_or_auth"
    NOT_FOUND = "not_found"
    UNEXPECTED_STATUS = "unexpected_status"

    @property
    def is_retryable(self) -> bool:
        return self in _RETRYABLE_CLASSES


_RETRYABLE_CLASSES = frozenset(
    {
        FailureClass.RATE_LIMITED,
        FailureClass.SERVER_TRANSIENT,
        FailureClass.NETWORK_TRANSIENT,
    },
)


@dataclass(slots=True, frozen=True)
class RequestSpec:
    """Fully built description of one outbound call."""

    path: str
    body: dict[str, Any] | None = None
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=dict)
    operation: str = "API request"


@dataclass(slots=True)
class TransportResponse:
    """Raw upstream response; `body` is untrusted until sanitized."""

    status_code: int
    body: Any
    text: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(slots=True, eq=False)
class PendingRequest:
    """One caller's unit of work while it waits in the admission queue."""

    payload: RequestSpec
    result: asyncio.Future[TransportResponse]
    enqueued_at: float


@dataclass(slots=True)
class RetryContext:
    """Per-request retry bookkeeping, local to a single `execute` call."""

    max_attempts: int
    attempt: int = 0
    last_error: Exception | None = None

    @property
    def attempts_left(self) -> bool:
        return self.attempt < self.max_attempts


@dataclass(slots=True)
class OperationRecord:
    """History entry for one pipeline request outcome."""

    operation: str
    succeeded: bool
    status_code: int | None
    error: str | None
    timestamp: datetime
