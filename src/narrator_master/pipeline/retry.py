"""Retry/backoff policy engine wrapped around the transport invoker."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Protocol

from narrator_master.pipeline.errors import TransportFailure
from narrator_master.pipeline.failure_classifier import (
    classify_response,
    classify_transport_failure,
)
from narrator_master.pipeline.models import RequestSpec, RetryContext, TransportResponse

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class Invoker(Protocol):
    """Anything that performs one outbound call (see `HttpTransport`)."""

    async def invoke(self, request: RequestSpec) -> TransportResponse: ...


class RetryPolicy:
    """Invoke the transport up to `max_attempts` times, retrying only transient failures.

    With `enabled=False` the policy behaves as if `max_attempts == 1`.
    """

    def __init__(  # noqa: PLR0913
        self,
        invoker: Invoker,
        *,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        max_delay_seconds: float = 60.0,
        enabled: bool = True,
        jitter_ratio: float = 0.0,
        sleep: SleepFn = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")
        self._invoker = invoker
        self.max_attempts = max_attempts if enabled else 1
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max(max_delay_seconds, base_delay_seconds)
        self.jitter_ratio = jitter_ratio
        self._sleep = sleep
        self._random = rng or random.Random()

    async def execute(self, request: RequestSpec) -> TransportResponse:
        """Return the first 2xx response or raise the last classified failure."""

        context = RetryContext(max_attempts=self.max_attempts)
        while True:
            context.attempt += 1
            cause: TransportFailure | None = None
            try:
                response = await self._invoker.invoke(request)
            except TransportFailure as exc:
                cause = exc
                classification = classify_transport_failure(exc)
            else:
                if response.is_success:
                    if context.attempt > 1:
                        logger.info(
                            "%s succeeded after %d attempts",
                            request.operation,
                            context.attempt,
                        )
                    return response
                classification = classify_response(response)

            error = classification.to_error(operation=request.operation)
            context.last_error = error

            if not classification.is_retryable:
                logger.warning(
                    "%s failed with non-retryable error (%s, HTTP %d): %s",
                    request.operation,
                    classification.reason_code,
                    classification.status_code,
                    classification.message,
                )
                raise error from cause
            if not context.attempts_left:
                logger.warning(
                    "%s failed after %d attempts: %s",
                    request.operation,
                    context.attempt,
                    classification.message,
                )
                raise error from cause

            delay = self.compute_delay(next_attempt=context.attempt + 1)
            logger.warning(
                "%s failed (attempt %d/%d, %s), retrying in %.0fms",
                request.operation,
                context.attempt,
                context.max_attempts,
                classification.reason_code,
                delay * 1000,
            )
            await self._sleep(delay)

    def compute_delay(self, *, next_attempt: int) -> float:
        """Backoff before attempt `next_attempt` (>= 2): base * 2^(n-2), capped."""

        exponential = self.base_delay_seconds * (2 ** max(next_attempt - 2, 0))
        capped = min(exponential, self.max_delay_seconds)
        if self.jitter_ratio <= 0 or capped <= 0:
            return capped
        return capped + self._random.uniform(0, capped * self.jitter_ratio)
