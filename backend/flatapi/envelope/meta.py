from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from flatapi.envelope.errors import ErrorDetail, InvalidMetaCode
from flatapi.envelope.pagination import Pagination
from flatapi.schemas.envelope import ErrorPayload, Meta, MetaDetail, ResponseEnvelope

SUCCESS_CODES = frozenset({200, 201})
ERROR_CODE_RANGE = range(400, 600)

CODE_MESSAGES: dict[int, str] = {
    200: "OK",
    201: "Created",
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    413: "Payload Too Large",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def default_message(code: int) -> str:
    if code in CODE_MESSAGES:
        return CODE_MESSAGES[code]
    if code >= 500:
        return "Server Error"
    return "Application Error"


class MonotonicClock:
    """UTC epoch milliseconds that never go backwards within a process."""

    def __init__(self, source: Callable[[], int] | None = None) -> None:
        self._source = source or (lambda: time.time_ns() // 1_000_000)
        self._last = 0
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        with self._lock:
            self._last = max(self._last, int(self._source()))
            return self._last


DetailLike = ErrorDetail | MetaDetail | Mapping[str, Any]


def _normalize_details(details: Iterable[DetailLike] | None) -> list[MetaDetail] | None:
    if details is None:
        return None
    normalized: list[MetaDetail] = []
    for detail in details:
        if isinstance(detail, MetaDetail):
            normalized.append(detail)
        elif isinstance(detail, ErrorDetail):
            normalized.append(MetaDetail(field=detail.field, message=detail.message))
        else:
            normalized.append(MetaDetail(field=str(detail["field"]), message=str(detail["message"])))
    return normalized


class MetaBuilder:
    def __init__(self, clock: MonotonicClock | None = None) -> None:
        self.clock = clock or MonotonicClock()

    def build_success(
        self,
        code: int = 200,
        data: Any = None,
        pagination: Pagination | None = None,
        *,
        message: str | None = None,
        binary: Mapping[str, str] | None = None,
    ) -> ResponseEnvelope:
        if isinstance(code, bool) or not isinstance(code, int) or code not in SUCCESS_CODES:
            raise InvalidMetaCode(code, allowed="200 or 201")
        meta_fields: dict[str, Any] = {
            "code": code,
            "message": message or default_message(code),
            "time": self.clock.now_ms(),
        }
        if pagination is not None:
            meta_fields.update(pagination.to_meta_fields())
        return ResponseEnvelope(meta=Meta(**meta_fields), data=data, **dict(binary or {}))

    def build_error(
        self,
        code: int,
        message: str | None = None,
        details: Iterable[DetailLike] | None = None,
        *,
        error_code: str | None = None,
        data: Any = None,
    ) -> ResponseEnvelope:
        if isinstance(code, bool) or not isinstance(code, int) or code not in ERROR_CODE_RANGE:
            raise InvalidMetaCode(code, allowed="a value between 400 and 599")
        text = message or default_message(code)
        meta = Meta(
            code=code,
            message=text,
            time=self.clock.now_ms(),
            details=_normalize_details(details),
        )
        return ResponseEnvelope(
            meta=meta,
            data=[] if data is None else data,
            error=ErrorPayload(code=error_code or f"http_{code}", message=text),
        )


_default_builder = MetaBuilder()


def build_success(
    code: int = 200,
    data: Any = None,
    pagination: Pagination | None = None,
    *,
    message: str | None = None,
    binary: Mapping[str, str] | None = None,
) -> ResponseEnvelope:
    return _default_builder.build_success(code, data, pagination, message=message, binary=binary)


def build_error(
    code: int,
    message: str | None = None,
    details: Iterable[DetailLike] | None = None,
    *,
    error_code: str | None = None,
    data: Any = None,
) -> ResponseEnvelope:
    return _default_builder.build_error(code, message, details, error_code=error_code, data=data)


def transport_status(envelope: ResponseEnvelope) -> int:
    """HTTP status for an envelope: 5xx and 201 pass through, all else is 200."""
    code = envelope.meta.code
    if code >= 500 or code == 201:
        return code
    return 200
