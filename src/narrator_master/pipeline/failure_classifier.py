"""Deterministic upstream failure classification for the retry policy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from narrator_master.pipeline.errors import (
    TerminalUpstreamError,
    TransientUpstreamError,
    TransportFailure,
    UpstreamError,
)
from narrator_master.pipeline.models import FailureClass, TransportResponse

_MAX_UPSTREAM_MESSAGE_CHARS = 500

_STATUS_CLASSES: dict[int, FailureClass] = {
    429: FailureClass.RATE_LIMITED,
    500: FailureClass.SERVER_TRANSIENT,
    502: FailureClass.SERVER_TRANSIENT,
    503: FailureClass.SERVER_TRANSIENT,
    400: FailureClass.BAD_REQUEST,
    401: FailureClass.ACCESS_OR_AUTH,
    403: FailureClass.ACCESS_OR_AUTH,
    404: FailureClass.NOT_FOUND,
}


@dataclass(slots=True)
class FailureClassification:
    """Normalized failure classification result."""

    failure_class: FailureClass
    reason_code: str
    status_code: int
    message: str

    @property
    def is_retryable(self) -> bool:
        return self.failure_class.is_retryable

    def to_error(self, *, operation: str) -> UpstreamError:
        """Build the caller-facing exception for this classification."""

        error_type = TransientUpstreamError if self.is_retryable else TerminalUpstreamError
        return error_type(
            self.message,
            status_code=self.status_code,
            reason_code=self.reason_code,
            operation=operation,
        )


def classify_response(response: TransportResponse) -> FailureClassification:
    """Classify a non-2xx response. Unlisted statuses are terminal."""

    failure_class = _STATUS_CLASSES.get(response.status_code, FailureClass.UNEXPECTED_STATUS)
    code, message = _upstream_error_details(response.body)
    return FailureClassification(
        failure_class=failure_class,
        reason_code=code or failure_class.value,
        status_code=response.status_code,
        message=message or f"Upstream request failed with HTTP {response.status_code}",
    )


def classify_transport_failure(error: TransportFailure) -> FailureClassification:
    """Transport-level failures (connect, DNS, timeout) are always retryable."""

    return FailureClassification(
        failure_class=FailureClass.NETWORK_TRANSIENT,
        reason_code="timeout" if error.is_timeout else "network_error",
        status_code=0,
        message=str(error),
    )


def _upstream_error_details(body: Any) -> tuple[str | None, str | None]:
    # OpenAI-style error envelope: {"error": {"message": ..., "code": ...}}
    if not isinstance(body, dict):
        return None, None
    error = body.get("error")
    if not isinstance(error, dict):
        return None, None
    code = error.get("code") or error.get("type")
    message = error.get("message")
    return (
        str(code)[:_MAX_UPSTREAM_MESSAGE_CHARS] if code else None,
        str(message)[:_MAX_UPSTREAM_MESSAGE_CHARS] if message else None,
    )
