"""Prometheus metrics for gateway observability."""

import time

from prometheus_client import Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match
from starlette.types import ASGIApp

# === Counters ===

HTTP_REQUESTS_TOTAL = Counter(
    "sbgateway_http_requests_total",
    "Total inbound HTTP requests",
    ["method", "endpoint", "status"],
)

UPSTREAM_CALLS_TOTAL = Counter(
    "sbgateway_upstream_calls_total",
    "Total calls to the ShopBack API",
    ["operation", "outcome"],  # outcome: 2xx, 4xx, 5xx, transport_error
)

# === Histograms ===

HTTP_REQUEST_LATENCY = Histogram(
    "sbgateway_http_request_latency_seconds",
    "Inbound HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

UPSTREAM_LATENCY = Histogram(
    "sbgateway_upstream_latency_seconds",
    "ShopBack API call latency in seconds",
    ["operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)


# === Helper Functions ===


def record_http_request(
    method: str,
    endpoint: str,
    status: int,
    latency: float,
) -> None:
    """Record an inbound HTTP request."""
    HTTP_REQUESTS_TOTAL.labels(
        method=method,
        endpoint=endpoint,
        status=str(status),
    ).inc()
    HTTP_REQUEST_LATENCY.labels(
        method=method,
        endpoint=endpoint,
    ).observe(latency)


def record_upstream_call(operation: str, status: int | None, latency: float) -> None:
    """Record a ShopBack API call; a missing status means a transport error."""
    outcome = "transport_error" if status is None else f"{status // 100}xx"
    UPSTREAM_CALLS_TOTAL.labels(operation=operation, outcome=outcome).inc()
    UPSTREAM_LATENCY.labels(operation=operation).observe(latency)


def _route_template(request: Request) -> str:
    # Label by route template so reference ids do not explode cardinality
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "unmatched"


# === HTTP Endpoint ===


class MetricsMiddleware(BaseHTTPMiddleware):
    """HTTP request metrics middleware."""

    def __init__(self, app: ASGIApp, exclude_paths: list[str] | None = None) -> None:
        super().__init__(app)
        self._exclude_paths = set(exclude_paths or [])

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self._exclude_paths:
            return await call_next(request)

        endpoint = _route_template(request)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            record_http_request(
                method=request.method,
                endpoint=endpoint,
                status=500,
                latency=time.perf_counter() - start,
            )
            raise

        record_http_request(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
            latency=time.perf_counter() - start,
        )
        return response


async def metrics_endpoint(_request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
