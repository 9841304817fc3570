from flatapi.envelope.codec import decode, encode, encode_binary, encode_request, validate_binary
from flatapi.envelope.errors import (
    ApplicationError,
    DuplicateRoute,
    EnvelopeError,
    ErrorDetail,
    InvalidBinaryEncoding,
    InvalidMetaCode,
    InvalidPagination,
    MalformedEnvelope,
    PayloadTooLarge,
    RouteNotFound,
    Unauthorized,
)
from flatapi.envelope.meta import MetaBuilder, MonotonicClock, build_error, build_success, transport_status
from flatapi.envelope.pagination import PageRequest, Pagination, paginate

__all__ = [
    "ApplicationError",
    "DuplicateRoute",
    "EnvelopeError",
    "ErrorDetail",
    "InvalidBinaryEncoding",
    "InvalidMetaCode",
    "InvalidPagination",
    "MalformedEnvelope",
    "MetaBuilder",
    "MonotonicClock",
    "PageRequest",
    "Pagination",
    "PayloadTooLarge",
    "RouteNotFound",
    "Unauthorized",
    "build_error",
    "build_success",
    "decode",
    "encode",
    "encode_binary",
    "encode_request",
    "paginate",
    "transport_status",
    "validate_binary",
]
