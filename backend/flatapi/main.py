from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from flatapi.api import gateway, health
from flatapi.api.response import exception_envelope
from flatapi.core.config import Settings, get_settings
from flatapi.core.logging_config import configure_logging
from flatapi.core.metrics import render_metrics
from flatapi.core.middleware import (
    MetricsMiddleware,
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from flatapi.core.security import Authenticator
from flatapi.routing.registry import RouteRegistry
from flatapi.services.dispatch_service import Dispatcher
from flatapi.services.route_catalog import load_handler_modules, register_catalog

logger = logging.getLogger("flatapi.api")


def build_registry(settings: Settings, registry: RouteRegistry | None = None) -> RouteRegistry:
    """Populate and freeze the route table during single-threaded startup."""
    registry = registry or RouteRegistry(allow_late_registration=settings.allow_late_registration)
    load_handler_modules(registry, settings.handler_module_paths)
    if settings.expose_route_catalog:
        register_catalog(registry)
    registry.freeze()
    return registry


def create_app(
    settings: Settings | None = None,
    *,
    registry: RouteRegistry | None = None,
    authenticator: Authenticator | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(log_level=settings.log_level, app_env=settings.app_env)
    dispatcher = Dispatcher(
        build_registry(settings, registry),
        authenticator=authenticator,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("Serving %d routes (app_env=%s).", len(dispatcher.registry), settings.app_env)
        yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.dispatcher = dispatcher
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_request_body_bytes=settings.max_request_body_bytes)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, app_env=settings.app_env)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["POST", "HEAD", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    if settings.metrics_enabled:
        @app.get("/metrics", include_in_schema=False)
        async def metrics() -> Response:
            payload, content_type = render_metrics()
            return Response(content=payload, media_type=content_type)

    app.include_router(health.router)
    app.include_router(gateway.router, prefix=settings.api_path_prefix)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        meta_code = exc.status_code if 400 <= exc.status_code < 600 else 500
        response = exception_envelope(
            request=request,
            meta_code=meta_code,
            message=message,
            code=f"http_{exc.status_code}",
        )
        for name, value in (exc.headers or {}).items():
            response.headers[name] = value
        return response

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> Response:
        logger.exception("Unhandled error outside the dispatcher", exc_info=exc)
        return exception_envelope(
            request=request,
            meta_code=500,
            message="Internal Server Error",
            code="internal_error",
        )

    return app


app = create_app()
