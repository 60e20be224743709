"""Error taxonomy for the outbound request pipeline."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every failure surfaced by the request pipeline."""


class ConfigurationError(PipelineError):
    """Service client is missing required configuration (for example the API key)."""


class QueueFullError(PipelineError):
    """Admission rejected because the request queue is at capacity."""

    def __init__(self, max_queue_size: int) -> None:
        super().__init__(f"Request queue is full ({max_queue_size} requests); try again later.")
        self.max_queue_size = max_queue_size


class RequestCancelledError(PipelineError):
    """Queued request was dropped by `clear_queue()` before it was dispatched."""

    def __init__(self, operation: str = "request") -> None:
        super().__init__(f"{operation} was cancelled before it started.")
        self.operation = operation


class TransportFailure(PipelineError):
    """Outbound call never produced an HTTP response (connect, DNS, timeout)."""

    def __init__(self, message: str, *, is_timeout: bool = False) -> None:
        super().__init__(message)
        self.is_timeout = is_timeout


class UpstreamError(PipelineError):
    """Classified failure returned by the upstream generative service."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        reason_code: str,
        operation: str = "request",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.reason_code = reason_code
        self.operation = operation

    @property
    def is_network_error(self) -> bool:
        return self.status_code == 0


class TransientUpstreamError(UpstreamError):
    """Retryable failure (429, 5xx, transport) that outlived every retry attempt."""


class TerminalUpstreamError(UpstreamError):
    """Non-retryable failure (client or auth error) surfaced after a single attempt."""
