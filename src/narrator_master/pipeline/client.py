"""Service client composing transport, retry policy, and admission queue."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from narrator_master.config import PipelineSettings
from narrator_master.pipeline.errors import PipelineError, UpstreamError
from narrator_master.pipeline.models import OperationRecord, RequestSpec, TransportResponse
from narrator_master.pipeline.queue import RequestQueue
from narrator_master.pipeline.retry import Invoker, RetryPolicy, SleepFn

logger = logging.getLogger(__name__)


class ServiceClient:
    """One endpoint family's pipeline; text and image services each own one."""

    def __init__(
        self,
        transport: Invoker,
        *,
        settings: PipelineSettings | None = None,
        name: str = "service",
        sleep: SleepFn | None = None,
    ) -> None:
        self.settings = settings or PipelineSettings()
        self.settings.validate()
        self.name = name
        self.transport = transport
        retry_kwargs = {"sleep": sleep} if sleep is not None else {}
        self.policy = RetryPolicy(
            transport,
            max_attempts=self.settings.max_retry_attempts,
            base_delay_seconds=self.settings.retry_base_delay_seconds,
            max_delay_seconds=self.settings.retry_max_delay_seconds,
            enabled=self.settings.retry_enabled,
            jitter_ratio=self.settings.retry_jitter_ratio,
            **retry_kwargs,
        )
        self.queue = RequestQueue(self.policy, max_queue_size=self.settings.max_queue_size)
        self._history: list[OperationRecord] = []
        self._requests_succeeded = 0
        self._requests_failed = 0

    async def request(self, spec: RequestSpec) -> TransportResponse:
        """Submit `spec` through the queue; errors propagate unchanged."""

        try:
            response = await self.queue.submit(spec)
        except PipelineError as exc:
            self._record(spec, succeeded=False, status_code=_status_of(exc), error=str(exc))
            raise
        self._record(spec, succeeded=True, status_code=response.status_code, error=None)
        return response

    def get_queue_size(self) -> int:
        return self.queue.size()

    def clear_queue(self) -> int:
        return self.queue.clear()

    def history(self, limit: int | None = None) -> list[OperationRecord]:
        entries = list(self._history)
        if limit is not None and limit > 0:
            return entries[-limit:]
        return entries

    def clear_history(self) -> None:
        self._history = []

    def stats(self) -> dict[str, object]:
        return {
            "name": self.name,
            "queue_size": self.queue.size(),
            "in_flight": self.queue.in_flight,
            "max_queue_size": self.settings.max_queue_size,
            "max_retry_attempts": self.policy.max_attempts,
            "retry_enabled": self.settings.retry_enabled,
            "history_size": len(self._history),
            "requests_succeeded": self._requests_succeeded,
            "requests_failed": self._requests_failed,
        }

    async def aclose(self) -> None:
        cancelled = self.queue.clear()
        if cancelled:
            logger.info("%s: cancelled %d queued request(s) on shutdown", self.name, cancelled)
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()

    def _record(
        self,
        spec: RequestSpec,
        *,
        succeeded: bool,
        status_code: int | None,
        error: str | None,
    ) -> None:
        if succeeded:
            self._requests_succeeded += 1
        else:
            self._requests_failed += 1
        self._history.append(
            OperationRecord(
                operation=spec.operation,
                succeeded=succeeded,
                status_code=status_code,
                error=error,
                timestamp=datetime.now(UTC),
            ),
        )
        if len(self._history) > self.settings.max_history_size:
            self._history = self._history[-self.settings.max_history_size :]


def _status_of(error: PipelineError) -> int | None:
    if isinstance(error, UpstreamError):
        return error.status_code
    return None
