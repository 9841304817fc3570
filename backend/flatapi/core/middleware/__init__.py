from flatapi.core.middleware.metrics import MetricsMiddleware
from flatapi.core.middleware.request_logging import RequestLoggingMiddleware
from flatapi.core.middleware.request_size_limit import RequestSizeLimitMiddleware
from flatapi.core.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "MetricsMiddleware",
    "RequestLoggingMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
]
