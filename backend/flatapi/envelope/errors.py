from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ErrorDetail:
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class ErrorClassification:
    meta_code: int
    error_code: str
    message: str
    internal: bool


class EnvelopeError(Exception):
    """Failure that is reported to the caller inside a response envelope."""

    def __init__(
        self,
        message: str,
        *,
        meta_code: int,
        error_code: str,
        details: list[ErrorDetail] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.meta_code = meta_code
        self.error_code = error_code
        self.details = list(details or [])


class MalformedEnvelope(EnvelopeError):
    def __init__(self, message: str = "Malformed request envelope.", *, details: list[ErrorDetail] | None = None) -> None:
        super().__init__(message, meta_code=400, error_code="malformed_envelope", details=details)


class InvalidBinaryEncoding(EnvelopeError):
    def __init__(self, message: str = "Binary payload is not valid.", *, details: list[ErrorDetail] | None = None) -> None:
        super().__init__(message, meta_code=400, error_code="invalid_binary_encoding", details=details)


class Unauthorized(EnvelopeError):
    def __init__(self, message: str = "Unauthorized", *, details: list[ErrorDetail] | None = None) -> None:
        super().__init__(message, meta_code=401, error_code="unauthorized", details=details)


class RouteNotFound(EnvelopeError):
    def __init__(self, message: str = "Route not found.", *, details: list[ErrorDetail] | None = None) -> None:
        super().__init__(message, meta_code=404, error_code="route_not_found", details=details)


class DuplicateRoute(EnvelopeError):
    def __init__(self, message: str = "Route already registered.", *, details: list[ErrorDetail] | None = None) -> None:
        super().__init__(message, meta_code=409, error_code="duplicate_route", details=details)


class PayloadTooLarge(EnvelopeError):
    def __init__(self, message: str = "Payload too large", *, details: list[ErrorDetail] | None = None) -> None:
        super().__init__(message, meta_code=413, error_code="payload_too_large", details=details)


class InvalidPagination(EnvelopeError):
    def __init__(self, message: str = "Pagination fields are inconsistent.", *, details: list[ErrorDetail] | None = None) -> None:
        super().__init__(message, meta_code=500, error_code="invalid_pagination", details=details)


class InvalidMetaCode(EnvelopeError):
    def __init__(self, code: Any, *, allowed: str = "") -> None:
        message = f"Meta code {code!r} is not allowed here."
        if allowed:
            message = f"{message} Expected {allowed}."
        super().__init__(message, meta_code=500, error_code="invalid_meta_code")
        self.code = code


class ApplicationError(EnvelopeError):
    """Raised by handlers to answer with an application-level error code."""

    def __init__(
        self,
        code: int,
        message: str | None = None,
        *,
        error_code: str = "application_error",
        details: list[ErrorDetail] | None = None,
    ) -> None:
        # An empty message is filled from the meta code table when built.
        super().__init__(message or "", meta_code=code, error_code=error_code, details=details)


def classify_exception(exc: Exception) -> ErrorClassification:
    if isinstance(exc, EnvelopeError):
        return ErrorClassification(
            meta_code=exc.meta_code,
            error_code=exc.error_code,
            message=exc.message,
            internal=exc.meta_code >= 500,
        )
    if isinstance(exc, MemoryError):
        return ErrorClassification(503, "resource_exhausted", "Service Unavailable", True)
    return ErrorClassification(500, "internal_error", "Internal Server Error", True)
