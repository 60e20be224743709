"""Async HTTP transport: exactly one outbound call per invocation."""

from __future__ import annotations

import logging

import httpx

from narrator_master.pipeline.errors import TransportFailure
from narrator_master.pipeline.models import RequestSpec, TransportResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_USER_AGENT = "NarratorMaster/0.1 (+https://github.com/narrator-master)"


class HttpTransport:
    """httpx client wrapper with base URL, default headers, and timeout.

    Non-2xx statuses are returned, not raised; classification and retries
    live in the policy engine above this layer.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        base_headers = {"User-Agent": user_agent, "Content-Type": "application/json"}
        if headers:
            base_headers.update(headers)
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers=base_headers,
            transport=transport,
        )

    async def invoke(self, request: RequestSpec) -> TransportResponse:
        """Send one request and return its status and decoded body."""

        headers = dict(request.headers)
        try:
            response = await self._client.request(
                request.method,
                request.path,
                json=request.body,
                headers=headers,
            )
        except httpx.TimeoutException as exc:
            logger.warning("Timeout during %s: %s", request.operation, exc)
            raise TransportFailure(f"Timeout during {request.operation}", is_timeout=True) from exc
        except httpx.TransportError as exc:
            logger.warning("Network error during %s: %s", request.operation, exc)
            raise TransportFailure(f"Network error during {request.operation}: {exc}") from exc

        return TransportResponse(
            status_code=response.status_code,
            body=_decode_json(response),
            text=response.text,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()


def _decode_json(response: httpx.Response) -> object:
    if not response.content:
        return None
    try:
        return response.json()
    except (ValueError, RecursionError):
        return None
