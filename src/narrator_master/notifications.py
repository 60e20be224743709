"""Map pipeline failures to user-facing notices."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from narrator_master.pipeline.errors import (
    ConfigurationError,
    QueueFullError,
    RequestCancelledError,
    TerminalUpstreamError,
    TransientUpstreamError,
)

logger = logging.getLogger(__name__)


class NoticeSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(slots=True, frozen=True)
class FailureNotice:
    """What to show the user for a failed operation."""

    severity: NoticeSeverity
    message: str
    transient: bool = False
    silent: bool = False

    def render(self, context: str | None = None) -> str:
        prefix = f"[{context}] " if context else ""
        return f"{prefix}{self.message}"


_TERMINAL_MESSAGES: dict[int, str] = {
    400: "The request was rejected as invalid",
    401: "Invalid API key; check the OpenAI credentials",
    403: "Access to this resource is forbidden for the configured API key",
    404: "The requested model or endpoint was not found",
}


def describe_failure(error: BaseException) -> FailureNotice:
    """Classify `error` into a notice severity and message."""

    if isinstance(error, RequestCancelledError):
        return FailureNotice(NoticeSeverity.INFO, str(error), silent=True)
    if isinstance(error, QueueFullError):
        return FailureNotice(NoticeSeverity.WARNING, str(error), transient=True)
    if isinstance(error, TransientUpstreamError):
        if error.is_network_error:
            message = f"{error.operation} failed: {error.message}"
        else:
            message = (
                f"{error.operation} is temporarily unavailable "
                f"(HTTP {error.status_code}): {error.message}"
            )
        return FailureNotice(NoticeSeverity.WARNING, message, transient=True)
    if isinstance(error, TerminalUpstreamError):
        headline = _TERMINAL_MESSAGES.get(
            error.status_code,
            f"{error.operation} failed with HTTP {error.status_code}",
        )
        return FailureNotice(NoticeSeverity.ERROR, f"{headline}: {error.message}")
    if isinstance(error, ConfigurationError):
        return FailureNotice(NoticeSeverity.ERROR, str(error))
    logger.debug("Unclassified failure: %r", error)
    return FailureNotice(NoticeSeverity.ERROR, str(error) or type(error).__name__)
