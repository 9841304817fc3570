from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from flatapi.core.metrics import http_request_duration_seconds, http_requests_total

UNMATCHED = "unmatched"


def _path_label(request: Request) -> str:
    """Registered envelope route when one resolved, else the router template.

    Raw request paths carry ids and would make label cardinality unbounded.
    """
    envelope_route = getattr(request.state, "envelope_route", None)
    if envelope_route:
        return envelope_route
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started_at = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started_at
        path = _path_label(request)
        http_requests_total.labels(method=request.method, path=path, status=str(response.status_code)).inc()
        http_request_duration_seconds.labels(method=request.method, path=path).observe(elapsed)
        return response
