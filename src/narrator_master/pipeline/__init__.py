"""Resilient outbound-request pipeline shared by every generative service client.

Layers, each depending only on the one below it:

- `transport.HttpTransport`: one outbound call, no retries, no queueing.
- `retry.RetryPolicy`: failure classification and exponential backoff.
- `queue.RequestQueue`: single-flight admission control with a bounded FIFO.

`client.ServiceClient` wires the three together for one endpoint family.
"""

from narrator_master.pipeline.client import ServiceClient
from narrator_master.pipeline.errors import (
    ConfigurationError,
    PipelineError,
    QueueFullError,
    RequestCancelledError,
    TerminalUpstreamError,
    TransientUpstreamError,
    TransportFailure,
    UpstreamError,
)
from narrator_master.pipeline.models import FailureClass, RequestSpec, TransportResponse
from narrator_master.pipeline.queue import RequestQueue
from narrator_master.pipeline.retry import RetryPolicy
from narrator_master.pipeline.transport import HttpTransport

__all__ = [
    "ConfigurationError",
    "FailureClass",
    "HttpTransport",
    "PipelineError",
    "QueueFullError",
    "RequestCancelledError",
    "RequestQueue",
    "RequestSpec",
    "RetryPolicy",
    "ServiceClient",
    "TerminalUpstreamError",
    "TransientUpstreamError",
    "TransportFailure",
    "TransportResponse",
    "UpstreamError",
]
