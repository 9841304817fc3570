from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from flatapi.api.response import envelope_response
from flatapi.envelope.errors import ErrorDetail, PayloadTooLarge
from flatapi.envelope.meta import build_error


def payload_too_large(limit: int) -> PayloadTooLarge:
    return PayloadTooLarge(details=[ErrorDetail("body", f"Request body exceeds {limit} bytes.")])


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects oversized bodies by Content-Length with an application error envelope."""

    def __init__(self, app, *, max_request_body_bytes: int) -> None:
        super().__init__(app)
        self._max_request_body_bytes = max_request_body_bytes

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                parsed_length = int(content_length)
            except (TypeError, ValueError):
                parsed_length = None
            if parsed_length is not None and parsed_length > self._max_request_body_bytes:
                exc = payload_too_large(self._max_request_body_bytes)
                request.state.meta_code = exc.meta_code
                envelope = build_error(exc.meta_code, exc.message, exc.details, error_code=exc.error_code)
                return envelope_response(envelope)
        return await call_next(request)
