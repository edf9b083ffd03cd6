from __future__ import annotations

"""Prometheus metrics for the Sheets API.

Adds an HTTP middleware that records request latency per method/path/status,
plus counters for relay stream outcomes and per-item context/URL loading.

For streamed responses the middleware observes the time until headers are
sent, not until the body ends; full stream duration is recorded separately in
``sheets_relay_stream_seconds``.
"""

import time
from typing import Callable, Awaitable

from prometheus_client import Counter, Histogram
from starlette.requests import Request
from starlette.responses import Response

# Histogram buckets chosen for web latencies (seconds)
REQUEST_LATENCY = Histogram(
    "sheets_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("method", "path", "status"),
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)

RELAY_STREAMS = Counter(
    "sheets_relay_streams_total",
    "Completion relay streams by final outcome",
    labelnames=("outcome",),
)

RELAY_DURATION = Histogram(
    "sheets_relay_stream_seconds",
    "Completion relay stream duration in seconds, from first read to close",
    labelnames=("outcome",),
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 40.0, 60.0, 120.0, 300.0),
)

FETCH_TOTAL = Counter(
    "sheets_fetch_total",
    "Context and URL loads by kind and outcome",
    labelnames=("kind", "outcome"),
)


def sanitize_path(path: str) -> str:
    """Reduce high-cardinality paths (e.g., /api/sheets/{id}) to a coarse label.

    Keeps the first two static segments, so ``/api/rules/a/b.md`` becomes
    ``/api/rules``.
    """
    if not path:
        return "/"
    segs = [s for s in path.split("?")[0].split("/") if s]
    if not segs:
        return "/"
    return "/" + "/".join(segs[:2])


def metrics_middleware_factory() -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    async def middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        # Avoid observing the metrics endpoint itself
        if request.url.path.startswith("/metrics"):
            return await call_next(request)
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        REQUEST_LATENCY.labels(
            method=request.method,
            path=sanitize_path(request.url.path),
            status=str(response.status_code),
        ).observe(elapsed)
        return response

    return middleware
