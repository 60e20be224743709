from __future__ import annotations

import asyncio

import allure
import pytest
from fakes import ScriptedInvoker, SleepRecorder, failed, ok

from narrator_master.config import PipelineSettings
from narrator_master.pipeline.client import ServiceClient
from narrator_master.pipeline.errors import (
    RequestCancelledError,
    TerminalUpstreamError,
    TransientUpstreamError,
)
from narrator_master.pipeline.models import RequestSpec

pytestmark = [
    allure.epic("Request Pipeline"),
    allure.feature("Service Client"),
]


def _client(invoker, sleep=None, **settings) -> ServiceClient:
    return ServiceClient(
        invoker,
        settings=PipelineSettings(**settings),
        name="test",
        sleep=sleep or SleepRecorder(),
    )


@pytest.mark.asyncio
async def test_request_records_success_history() -> None:
    client = _client(ScriptedInvoker([ok({"id": 1})]))

    response = await client.request(RequestSpec(path="/x", operation="Lookup"))

    assert response.body == {"id": 1}
    [record] = client.history()
    assert record.operation == "Lookup"
    assert record.succeeded
    assert record.status_code == 200
    assert client.stats()["requests_succeeded"] == 1


@pytest.mark.asyncio
async def test_request_errors_propagate_and_are_recorded() -> None:
    client = _client(ScriptedInvoker([failed(401, "bad key")]))

    with pytest.raises(TerminalUpstreamError):
        await client.request(RequestSpec(path="/x", operation="Lookup"))

    [record] = client.history()
    assert not record.succeeded
    assert record.status_code == 401
    assert record.error == "bad key"


@pytest.mark.asyncio
async def test_settings_drive_retry_behaviour() -> None:
    sleep = SleepRecorder()
    invoker = ScriptedInvoker([failed(500), failed(500), failed(500)])
    client = _client(
        invoker,
        sleep=sleep,
        max_retry_attempts=3,
        retry_base_delay_ms=100,
        retry_max_delay_ms=150,
    )

    with pytest.raises(TransientUpstreamError):
        await client.request(RequestSpec(path="/x"))

    assert len(invoker.calls) == 3
    assert sleep.delays == [pytest.approx(0.1), pytest.approx(0.15)]


@pytest.mark.asyncio
async def test_history_is_bounded() -> None:
    client = _client(ScriptedInvoker(), max_history_size=3)

    for index in range(5):
        await client.request(RequestSpec(path="/x", operation=f"op-{index}"))

    assert [record.operation for record in client.history()] == ["op-2", "op-3", "op-4"]
    assert [record.operation for record in client.history(limit=1)] == ["op-4"]
    client.clear_history()
    assert client.history() == []


@pytest.mark.asyncio
async def test_aclose_cancels_queued_requests() -> None:
    release = asyncio.Event()

    async def slow(_request):
        await release.wait()
        return ok({})

    client = _client(ScriptedInvoker([slow]))
    first = asyncio.create_task(client.request(RequestSpec(path="/x")))
    second = asyncio.create_task(client.request(RequestSpec(path="/x")))
    for _ in range(5):
        await asyncio.sleep(0)

    assert client.get_queue_size() == 1
    await client.aclose()
    release.set()

    await first
    with pytest.raises(RequestCancelledError):
        await second


def test_invalid_settings_are_rejected() -> None:
    with pytest.raises(ValueError, match="MAX_QUEUE_SIZE"):
        _client(ScriptedInvoker(), max_queue_size=0)
