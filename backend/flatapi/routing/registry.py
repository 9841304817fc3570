"""Route table mapping ``(version, resource, operation)`` to handlers.

Lookups read an immutable snapshot without locking. Registration copies the
snapshot under a single writer lock and swaps the reference, so readers see
either the old table or the new one and never a partial update.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from flatapi.envelope.errors import DuplicateRoute, ErrorDetail, RouteNotFound
from flatapi.routing.operations import Operation, WellKnownOperation, is_valid_segment, normalize_resource

logger = logging.getLogger("flatapi.routing")

Handler = Callable[..., Any]
RouteKey = tuple[int, str, str]


@dataclass(frozen=True)
class Route:
    version: int
    resource: str
    operation: Operation
    handler: Handler
    requires_auth: bool = False
    paginated: bool = False
    summary: str = ""

    @property
    def key(self) -> RouteKey:
        return (self.version, self.resource, self.operation.name)

    @property
    def path(self) -> str:
        return f"/{self.version}/{self.resource}/{self.operation.name}"


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    path_params: tuple[str, ...] = ()


def _validate_version(version: object) -> int:
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise ValueError(f"Route version must be a positive integer, got {version!r}.")
    return version


class RouteTable:
    def __init__(self, routes: Iterable[Route] = ()) -> None:
        entries: dict[RouteKey, Route] = {}
        for route in routes:
            if route.key in entries:
                raise DuplicateRoute(
                    f"Route {route.path} is already registered.",
                    details=[ErrorDetail("route", route.path)],
                )
            entries[route.key] = route
        self._entries = MappingProxyType(entries)

    def get(self, key: RouteKey) -> Route | None:
        return self._entries.get(key)

    def with_route(self, route: Route) -> "RouteTable":
        return RouteTable([*self._entries.values(), route])

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[Route]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


class RouteRegistry:
    def __init__(self, *, allow_late_registration: bool = False) -> None:
        self._table = RouteTable()
        self._lock = threading.Lock()
        self._frozen = False
        self._allow_late_registration = allow_late_registration

    @property
    def table(self) -> RouteTable:
        return self._table

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True
        logger.info("Route table frozen with %d routes.", len(self._table))

    def register(
        self,
        version: int,
        resource: str,
        operation: str | Operation | WellKnownOperation,
        handler: Handler,
        *,
        requires_auth: bool = False,
        paginated: bool = False,
        summary: str = "",
    ) -> Route:
        if not callable(handler):
            raise TypeError("Route handler must be callable.")
        route = Route(
            version=_validate_version(version),
            resource=normalize_resource(resource),
            operation=Operation.parse(operation),
            handler=handler,
            requires_auth=requires_auth,
            paginated=paginated,
            summary=summary,
        )
        with self._lock:
            if self._frozen and not self._allow_late_registration:
                raise RuntimeError("Route table is frozen; register routes during startup.")
            if route.key in self._table:
                raise DuplicateRoute(
                    f"Route {route.path} is already registered.",
                    details=[ErrorDetail("route", route.path)],
                )
            self._table = self._table.with_route(route)
        logger.info("Registered route %s", route.path)
        return route

    def route(self, version: int, resource: str, operation: str | Operation, **options: Any) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.register(version, resource, operation, handler, **options)
            return handler

        return decorator

    def replace(self, table: RouteTable) -> None:
        """Swap in a prebuilt table, e.g. on hot reload."""
        with self._lock:
            self._table = table
        logger.info("Route table replaced with %d routes.", len(table))

    def lookup(self, version: int, resource: str, operation: str | Operation | WellKnownOperation) -> Route:
        try:
            resource = normalize_resource(resource)
            name = Operation.parse(operation).name
        except ValueError as exc:
            raise RouteNotFound(
                f"No route for version {version}, resource {resource!r}, operation {operation!r}.",
                details=[ErrorDetail("path", str(exc))],
            ) from exc
        route = self._table.get((version, resource, name))
        if route is None:
            raise RouteNotFound(
                f"No route for version {version}, resource {resource!r}, operation {name!r}.",
                details=[ErrorDetail("path", f"/{version}/{resource}/{name}")],
            )
        return route

    def resolve(self, version: int, resource: str, operation: str | Operation | WellKnownOperation) -> Handler:
        return self.lookup(version, resource, operation).handler

    def match(self, path: str) -> RouteMatch:
        """Resolve a request path, extracting id segments as positional params.

        ``/1/document/1234/pages/list`` resolves resource ``document/pages``
        with params ``("1234",)``; ``/1/user/delete/42`` resolves ``user``
        with params ``("42",)``. The longest resource that is registered wins.
        """
        segments = path.strip("/").split("/")
        not_found = RouteNotFound(f"No route matches {path!r}.", details=[ErrorDetail("path", path)])
        if len(segments) < 3 or any(not segment for segment in segments):
            raise not_found
        version_segment, rest = segments[0], segments[1:]
        if not (version_segment.isascii() and version_segment.isdigit()) or int(version_segment) < 1:
            raise not_found
        version = int(version_segment)

        table = self._table
        for op_index in range(len(rest) - 1, 0, -1):
            operation = rest[op_index]
            if not is_valid_segment(operation):
                continue
            leading = rest[:op_index]
            names, ids = leading[0::2], leading[1::2]
            if not all(is_valid_segment(name) for name in names):
                continue
            route = table.get((version, "/".join(names), operation))
            if route is not None:
                return RouteMatch(route=route, path_params=tuple(ids) + tuple(rest[op_index + 1:]))
        raise not_found

    def routes(self) -> list[Route]:
        return sorted(self._table, key=lambda route: route.key)

    def __len__(self) -> int:
        return len(self._table)
