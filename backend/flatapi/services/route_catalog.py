from __future__ import annotations

import importlib
import logging

from flatapi.envelope.errors import ErrorDetail, MalformedEnvelope
from flatapi.envelope.pagination import paginate
from flatapi.routing.operations import LIST
from flatapi.routing.registry import RouteRegistry
from flatapi.services.dispatch_service import HandlerResult, RequestContext

logger = logging.getLogger("flatapi.routing")

CATALOG_VERSION = 1
CATALOG_RESOURCE = "routes"


def register_catalog(registry: RouteRegistry) -> None:
    def list_routes(context: RequestContext) -> HandlerResult:
        criteria = context.criteria
        version = criteria.get("version")
        if version is not None and (isinstance(version, bool) or not isinstance(version, int)):
            raise MalformedEnvelope(details=[ErrorDetail("filter.version", "Expected an integer.")])
        resource = criteria.get("resource")
        rows = [
            {
                "version": route.version,
                "resource": route.resource,
                "operation": route.operation.name,
                "custom": route.operation.is_custom,
                "requires_auth": route.requires_auth,
                "summary": route.summary,
            }
            for route in registry.routes()
            if (version is None or route.version == version)
            and (resource is None or route.resource == resource)
        ]
        page_rows, pagination = paginate(rows, context.page_request())
        return HandlerResult(data=page_rows, pagination=pagination)

    registry.register(
        CATALOG_VERSION,
        CATALOG_RESOURCE,
        LIST,
        list_routes,
        paginated=True,
        summary="List registered routes.",
    )


def load_handler_modules(registry: RouteRegistry, module_paths: list[str]) -> None:
    """Import each module and call its ``register(registry)`` hook."""
    for module_path in module_paths:
        module = importlib.import_module(module_path)
        register = getattr(module, "register", None)
        if not callable(register):
            raise RuntimeError(f"Handler module {module_path!r} does not define register(registry).")
        register(registry)
        logger.info("Loaded handler module %s", module_path)
