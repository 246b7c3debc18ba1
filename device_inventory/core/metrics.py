"""Prometheus metrics for HTTP requests and store calls."""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

HTTP_REQUESTS = Counter(
    "device_inventory_http_requests_total",
    "HTTP requests handled, by route template and status code.",
    ["method", "route", "status"],
)
HTTP_REQUEST_DURATION = Histogram(
    "device_inventory_http_request_duration_seconds",
    "HTTP request latency by route template.",
    ["method", "route"],
)
STORE_CALLS = Counter(
    "device_inventory_store_calls_total",
    "Store calls made through the resilience policy, by outcome.",
    ["operation", "outcome"],
)
STORE_RETRIES = Counter(
    "device_inventory_store_retries_total",
    "Store call attempts that failed transiently and were retried.",
    ["operation"],
)
CIRCUIT_REJECTIONS = Counter(
    "device_inventory_circuit_rejections_total",
    "Store calls rejected without running because the circuit was open.",
    ["operation"],
)


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    # unmatched paths share one label so arbitrary URLs cannot grow the series count
    return getattr(route, "path", "unmatched")


async def record_request_metrics(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        route = _route_template(request)
        HTTP_REQUEST_DURATION.labels(request.method, route).observe(time.perf_counter() - started)
        HTTP_REQUESTS.labels(request.method, route, str(status_code)).inc()


def metrics_response() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "CIRCUIT_REJECTIONS",
    "HTTP_REQUESTS",
    "HTTP_REQUEST_DURATION",
    "STORE_CALLS",
    "STORE_RETRIES",
    "metrics_response",
    "record_request_metrics",
]
