from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from flatapi.core.config import Settings, get_settings
from flatapi.core.metrics import envelope_rejections_total, envelope_request_duration_seconds, envelope_requests_total
from flatapi.core.security import Authenticator, extract_bearer_token
from flatapi.envelope import codec
from flatapi.envelope.errors import (
    EnvelopeError,
    InvalidMetaCode,
    InvalidPagination,
    RouteNotFound,
    Unauthorized,
    classify_exception,
)
from flatapi.envelope.meta import MetaBuilder, transport_status
from flatapi.envelope.pagination import PageRequest, Pagination, criteria as filter_criteria
from flatapi.routing.registry import Handler, Route, RouteMatch, RouteRegistry
from flatapi.schemas.envelope import RequestEnvelope, ResponseEnvelope

logger = logging.getLogger("flatapi.dispatch")


@dataclass(frozen=True)
class RequestContext:
    """Everything a handler receives for one call."""

    envelope: RequestEnvelope
    route: Route
    path_params: tuple[str, ...] = ()
    token: str | None = None
    principal: Any = None
    request_id: str | None = None
    default_page_size: int = 25
    max_page_size: int = 200
    max_decoded_bytes: int = codec.DEFAULT_MAX_DECODED_BYTES

    @property
    def filter(self) -> dict[str, Any]:
        return dict(self.envelope.filter or {})

    @property
    def criteria(self) -> dict[str, Any]:
        return filter_criteria(self.envelope.filter)

    @property
    def data(self) -> dict[str, Any]:
        return dict(self.envelope.data or {})

    def binary(self) -> bytes | None:
        return codec.validate_binary(self.envelope, max_decoded_bytes=self.max_decoded_bytes)

    def page_request(self) -> PageRequest:
        return PageRequest.from_filter(
            self.envelope.filter,
            default_size=self.default_page_size,
            max_size=self.max_page_size,
        )


@dataclass(frozen=True)
class HandlerResult:
    data: Any = None
    code: int = 200
    pagination: Pagination | None = None
    message: str | None = None
    binary: bytes | None = None
    compress_binary: bool = False


@dataclass(frozen=True)
class DispatchResult:
    status_code: int
    envelope: ResponseEnvelope
    body: bytes
    route: Route | None = field(default=None, compare=False)


class Dispatcher:
    def __init__(
        self,
        registry: RouteRegistry,
        *,
        authenticator: Authenticator | None = None,
        meta_builder: MetaBuilder | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.authenticator = authenticator
        self.meta_builder = meta_builder or MetaBuilder()
        self.settings = settings or get_settings()

    def find(self, path: str) -> RouteMatch | None:
        """Route lookup for existence checks; never raises for unknown paths."""
        try:
            return self.registry.match(path)
        except RouteNotFound:
            return None

    async def dispatch(
        self,
        path: str,
        body: bytes | str,
        *,
        authorization: str | None = None,
        request_id: str | None = None,
    ) -> DispatchResult:
        started_at = time.perf_counter()
        route: Route | None = None
        try:
            match = self.registry.match(path)
            route = match.route
            envelope = codec.decode(
                body,
                check_binary=self.settings.validate_binary_eagerly,
                max_decoded_bytes=self.settings.binary_max_decoded_bytes,
            )
            token = extract_bearer_token(authorization)
            principal = await self._authenticate(route, token)
            context = RequestContext(
                envelope=envelope,
                route=route,
                path_params=match.path_params,
                token=token,
                principal=principal,
                request_id=request_id,
                default_page_size=self.settings.default_page_size,
                max_page_size=self.settings.max_page_size,
                max_decoded_bytes=self.settings.binary_max_decoded_bytes,
            )
            outcome = await self._invoke(route.handler, context)
            response = self._success(route, outcome)
        except EnvelopeError as exc:
            envelope_rejections_total.labels(error_code=exc.error_code).inc()
            response = self.error_envelope(exc)
        except Exception as exc:
            logger.exception("Unhandled handler failure", extra={"request_id": request_id, "path": path})
            response = self.internal_error_envelope(exc)

        body_bytes = self._encode(response, request_id=request_id)
        if body_bytes is None:
            response = self.internal_error_envelope(RuntimeError("response encoding failed"))
            body_bytes = codec.encode(response)

        labels = _route_labels(route)
        duration = time.perf_counter() - started_at
        envelope_requests_total.labels(**labels, meta_code=str(response.meta.code)).inc()
        envelope_request_duration_seconds.labels(**labels).observe(duration)
        logger.info(
            "envelope.dispatch",
            extra={
                "request_id": request_id,
                "path": path,
                **labels,
                "meta_code": response.meta.code,
                "error_code": response.error.code if response.error is not None else None,
                "duration_ms": int(duration * 1000),
            },
        )
        return DispatchResult(
            status_code=transport_status(response),
            envelope=response,
            body=body_bytes,
            route=route,
        )

    async def _authenticate(self, route: Route, token: str | None) -> Any:
        if token is None:
            if route.requires_auth:
                raise Unauthorized("Missing bearer token")
            return None
        if self.authenticator is None:
            return None
        principal = self.authenticator(token)
        if inspect.isawaitable(principal):
            principal = await principal
        if not principal and route.requires_auth:
            raise Unauthorized("Invalid token")
        return principal or None

    async def _invoke(self, handler: Handler, context: RequestContext) -> Any:
        if inspect.iscoroutinefunction(handler):
            result = await handler(context)
        else:
            result = await asyncio.to_thread(handler, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _success(self, route: Route, outcome: Any) -> ResponseEnvelope:
        if not isinstance(outcome, HandlerResult):
            outcome = HandlerResult(data=outcome)
        if route.paginated and outcome.pagination is None:
            raise InvalidPagination(f"Route {route.path} is paginated but returned no pagination.")
        if not route.paginated and outcome.pagination is not None:
            raise InvalidPagination(f"Route {route.path} is not paginated but returned pagination.")
        binary = None
        if outcome.binary is not None:
            binary = codec.encode_binary(outcome.binary, compress=outcome.compress_binary)
        return self.meta_builder.build_success(
            outcome.code,
            outcome.data,
            outcome.pagination,
            message=outcome.message,
            binary=binary,
        )

    def error_envelope(self, exc: EnvelopeError) -> ResponseEnvelope:
        if exc.meta_code >= 500:
            logger.error("Envelope fault %s: %s", exc.error_code, exc.message)
        else:
            logger.warning("Envelope rejected %s: %s", exc.error_code, exc.message)
        try:
            return self.meta_builder.build_error(
                exc.meta_code,
                exc.message or None,
                exc.details,
                error_code=exc.error_code,
            )
        except InvalidMetaCode as invalid:
            logger.error("Handler raised an error with meta code %r", exc.meta_code)
            return self.internal_error_envelope(invalid)

    def internal_error_envelope(self, exc: Exception) -> ResponseEnvelope:
        classification = classify_exception(exc)
        code = classification.meta_code if classification.meta_code >= 500 else 500
        return self.meta_builder.build_error(code, classification.message, error_code=classification.error_code)

    def _encode(self, response: ResponseEnvelope, *, request_id: str | None) -> bytes | None:
        try:
            return codec.encode(response)
        except EnvelopeError as exc:
            logger.error(
                "Handler returned a non-flat response: %s",
                [detail.to_dict() for detail in exc.details],
                extra={"request_id": request_id},
            )
            return None


def _route_labels(route: Route | None) -> dict[str, str]:
    if route is None:
        return {"version": "unmatched", "resource": "unmatched", "operation": "unmatched"}
    return {"version": str(route.version), "resource": route.resource, "operation": route.operation.name}
