"""Admission-controlled single-flight queue in front of the retry policy.

Every caller enters through `submit`. At most one request is dispatched to
the executor at a time; later callers wait in a bounded FIFO and are
rejected with `QueueFullError` once the bound is reached. All state
mutations happen in synchronous code between `await` points, so admit,
dequeue and clear are atomic with respect to each other on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Protocol

from narrator_master.pipeline.errors import QueueFullError, RequestCancelledError
from narrator_master.pipeline.models import PendingRequest, RequestSpec, TransportResponse

logger = logging.getLogger(__name__)


class Executor(Protocol):
    """Anything that turns a request into a final outcome (see `RetryPolicy`)."""

    async def execute(self, request: RequestSpec) -> TransportResponse: ...


class RequestQueue:
    """Bounded FIFO with at most one in-flight request per instance.

    `max_queue_size` bounds the in-flight request together with the pending
    ones, so `max_queue_size + 1` concurrent submits yield exactly one
    rejection.
    """

    def __init__(self, executor: Executor, *, max_queue_size: int = 100) -> None:
        if max_queue_size < 1:
            raise ValueError("max_queue_size must be >= 1")
        self._executor = executor
        self.max_queue_size = max_queue_size
        self._pending: deque[PendingRequest] = deque()
        self._in_flight = False
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def size(self) -> int:
        """Number of waiting requests, excluding the one being serviced."""

        return len(self._pending)

    async def submit(self, payload: RequestSpec) -> TransportResponse:
        """Admit `payload` and wait for its outcome.

        Raises `QueueFullError` without suspending when capacity is exhausted.
        """

        occupied = len(self._pending) + (1 if self._in_flight else 0)
        if occupied >= self.max_queue_size:
            logger.warning(
                "Rejecting %s: queue full (%d/%d)",
                payload.operation,
                occupied,
                self.max_queue_size,
            )
            raise QueueFullError(self.max_queue_size)

        loop = asyncio.get_running_loop()
        request = PendingRequest(
            payload=payload,
            result=loop.create_future(),
            enqueued_at=time.monotonic(),
        )
        if self._in_flight:
            self._pending.append(request)
            logger.debug(
                "Queued %s (position %d)",
                payload.operation,
                len(self._pending),
            )
        else:
            self._in_flight = True
            self._drain_task = loop.create_task(self._drain(request))
        try:
            return await request.result
        except asyncio.CancelledError:
            # release the slot of a caller that gave up while still queued
            if request in self._pending:
                self._pending.remove(request)
            raise

    def clear(self) -> int:
        """Cancel every queued request; the in-flight one finishes naturally."""

        cancelled = 0
        while self._pending:
            request = self._pending.popleft()
            if not request.result.done():
                request.result.set_exception(RequestCancelledError(request.payload.operation))
                cancelled += 1
        if cancelled:
            logger.info("Cleared %d queued request(s)", cancelled)
        return cancelled

    async def _drain(self, first: PendingRequest) -> None:
        request: PendingRequest | None = first
        try:
            while request is not None:
                await self._service(request)
                request = self._next_request()
        finally:
            self._in_flight = False
            self._drain_task = None

    def _next_request(self) -> PendingRequest | None:
        while self._pending:
            request = self._pending.popleft()
            if request.result.done():
                # caller went away (task cancelled) before dispatch
                continue
            return request
        return None

    async def _service(self, request: PendingRequest) -> None:
        if request.result.done():
            return
        logger.debug(
            "Dispatching %s after %.3fs in queue",
            request.payload.operation,
            time.monotonic() - request.enqueued_at,
        )
        try:
            response = await self._executor.execute(request.payload)
        except asyncio.CancelledError:
            if not request.result.done():
                request.result.cancel()
            self.clear()
            raise
        except Exception as exc:  # noqa: BLE001
            if not request.result.done():
                request.result.set_exception(exc)
        else:
            if not request.result.done():
                request.result.set_result(response)
