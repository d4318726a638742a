"""ASGI middleware that records Prometheus metrics for every HTTP request."""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from procflow.core.metrics import http_request_duration_seconds, http_requests_total

_SKIP_PATHS = frozenset({"/api/health", "/metrics"})

_UNMATCHED = "unmatched"


def _endpoint_label(request: Request) -> str:
    """Label a request by its route template rather than the raw path.

    Requests that did not match any route (404 probes) share one label to keep
    cardinality bounded.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if not path:
        return _UNMATCHED
    return path.rstrip("/") or "/"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Records request count and duration."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        method = request.method
        start = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
        finally:
            elapsed = time.perf_counter() - start
            endpoint = _endpoint_label(request)
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(elapsed)

        return response
