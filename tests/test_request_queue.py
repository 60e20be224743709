from __future__ import annotations

import asyncio

import allure
import pytest
from fakes import ok

from narrator_master.pipeline.errors import (
    QueueFullError,
    RequestCancelledError,
    TerminalUpstreamError,
)
from narrator_master.pipeline.models import RequestSpec, TransportResponse
from narrator_master.pipeline.queue import RequestQueue

pytestmark = [
    allure.epic("Request Pipeline"),
    allure.feature("Admission Queue"),
]


class GatedExecutor:
    """Executor that blocks each call until the test releases it."""

    def __init__(self) -> None:
        self.started: list[str] = []
        self.active = 0
        self.max_active = 0
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: dict[str, Exception] = {}

    def gate(self, operation: str) -> asyncio.Event:
        return self.gates.setdefault(operation, asyncio.Event())

    async def execute(self, request: RequestSpec) -> TransportResponse:
        self.started.append(request.operation)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await self.gate(request.operation).wait()
        finally:
            self.active -= 1
        if request.operation in self.failures:
            raise self.failures[request.operation]
        return ok({"operation": request.operation})


def _spec(name: str) -> RequestSpec:
    return RequestSpec(path="/x", operation=name)


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_single_request_flows_through() -> None:
    executor = GatedExecutor()
    executor.gate("a").set()
    queue = RequestQueue(executor, max_queue_size=1)

    response = await queue.submit(_spec("a"))

    assert response.body == {"operation": "a"}
    assert queue.size() == 0
    assert not queue.in_flight


@pytest.mark.asyncio
async def test_requests_are_serviced_one_at_a_time_in_fifo_order() -> None:
    executor = GatedExecutor()
    queue = RequestQueue(executor, max_queue_size=10)

    tasks = [asyncio.create_task(queue.submit(_spec(name))) for name in "abcd"]
    await _settle()

    assert executor.started == ["a"]
    assert queue.in_flight
    assert queue.size() == 3

    for name in "abcd":
        executor.gate(name).set()
    results = await asyncio.gather(*tasks)

    assert executor.started == ["a", "b", "c", "d"]
    assert executor.max_active == 1
    assert [result.body["operation"] for result in results] == ["a", "b", "c", "d"]
    assert not queue.in_flight


@pytest.mark.asyncio
async def test_capacity_counts_in_flight_request() -> None:
    executor = GatedExecutor()
    queue = RequestQueue(executor, max_queue_size=2)

    first = asyncio.create_task(queue.submit(_spec("a")))
    second = asyncio.create_task(queue.submit(_spec("b")))
    await _settle()

    with pytest.raises(QueueFullError) as exc_info:
        await queue.submit(_spec("c"))

    assert exc_info.value.max_queue_size == 2
    assert queue.size() == 1
    assert "c" not in executor.started

    executor.gate("a").set()
    executor.gate("b").set()
    await asyncio.gather(first, second)


@pytest.mark.asyncio
async def test_max_plus_one_concurrent_submits_reject_exactly_one() -> None:
    executor = GatedExecutor()
    queue = RequestQueue(executor, max_queue_size=3)

    tasks = [asyncio.create_task(queue.submit(_spec(name))) for name in "abcd"]
    await _settle()
    for name in "abcd":
        executor.gate(name).set()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    rejected = [result for result in results if isinstance(result, QueueFullError)]
    assert len(rejected) == 1
    assert isinstance(results[3], QueueFullError)


@pytest.mark.asyncio
async def test_clear_cancels_queued_requests_but_not_in_flight() -> None:
    executor = GatedExecutor()
    queue = RequestQueue(executor, max_queue_size=10)

    tasks = [asyncio.create_task(queue.submit(_spec(name))) for name in "abc"]
    await _settle()

    assert queue.clear() == 2
    assert queue.size() == 0

    executor.gate("a").set()
    results = await asyncio.gather(*tasks, return_exceptions=True)

    assert results[0].body == {"operation": "a"}
    assert all(isinstance(result, RequestCancelledError) for result in results[1:])
    assert executor.started == ["a"]


@pytest.mark.asyncio
async def test_clear_on_empty_queue_returns_zero() -> None:
    queue = RequestQueue(GatedExecutor(), max_queue_size=1)

    assert queue.clear() == 0


@pytest.mark.asyncio
async def test_failure_of_one_request_does_not_block_the_next() -> None:
    executor = GatedExecutor()
    executor.failures["a"] = TerminalUpstreamError(
        "bad",
        status_code=400,
        reason_code="bad_request",
    )
    queue = RequestQueue(executor, max_queue_size=5)

    first = asyncio.create_task(queue.submit(_spec("a")))
    second = asyncio.create_task(queue.submit(_spec("b")))
    await _settle()
    executor.gate("a").set()
    executor.gate("b").set()

    with pytest.raises(TerminalUpstreamError):
        await first
    assert (await second).body == {"operation": "b"}


@pytest.mark.asyncio
async def test_cancelled_caller_is_skipped_before_dispatch() -> None:
    executor = GatedExecutor()
    queue = RequestQueue(executor, max_queue_size=5)

    first = asyncio.create_task(queue.submit(_spec("a")))
    second = asyncio.create_task(queue.submit(_spec("b")))
    third = asyncio.create_task(queue.submit(_spec("c")))
    await _settle()

    second.cancel()
    await _settle()
    executor.gate("a").set()
    executor.gate("c").set()
    await asyncio.gather(first, third)

    assert executor.started == ["a", "c"]
    assert second.cancelled()


@pytest.mark.asyncio
async def test_cancelled_caller_releases_its_slot() -> None:
    executor = GatedExecutor()
    queue = RequestQueue(executor, max_queue_size=2)

    first = asyncio.create_task(queue.submit(_spec("a")))
    second = asyncio.create_task(queue.submit(_spec("b")))
    await _settle()
    assert queue.size() == 1

    second.cancel()
    await _settle()

    assert queue.size() == 0
    third = asyncio.create_task(queue.submit(_spec("c")))
    await _settle()
    assert queue.size() == 1

    executor.gate("a").set()
    executor.gate("c").set()
    results = await asyncio.gather(first, third)

    assert [result.body["operation"] for result in results] == ["a", "c"]
    assert executor.started == ["a", "c"]
    assert second.cancelled()


@pytest.mark.asyncio
async def test_queue_accepts_new_work_after_draining() -> None:
    executor = GatedExecutor()
    executor.gate("a").set()
    executor.gate("b").set()
    queue = RequestQueue(executor, max_queue_size=1)

    await queue.submit(_spec("a"))
    await queue.submit(_spec("b"))

    assert executor.started == ["a", "b"]


def test_max_queue_size_must_be_positive() -> None:
    with pytest.raises(ValueError, match="max_queue_size"):
        RequestQueue(GatedExecutor(), max_queue_size=0)
