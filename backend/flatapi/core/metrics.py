from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests.",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds.",
    ["method", "path"],
)

envelope_requests_total = Counter(
    "flatapi_requests_total",
    "Dispatched envelope requests by route and resulting meta code.",
    ["version", "resource", "operation", "meta_code"],
)

envelope_request_duration_seconds = Histogram(
    "flatapi_request_duration_seconds",
    "Handler dispatch duration in seconds.",
    ["version", "resource", "operation"],
)

envelope_rejections_total = Counter(
    "flatapi_envelope_rejections_total",
    "Requests rejected before reaching a handler.",
    ["error_code"],
)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
