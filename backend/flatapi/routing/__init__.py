from flatapi.routing.operations import DELETE, LIST, MODIFY, SAVE, Operation, WellKnownOperation
from flatapi.routing.registry import Route, RouteMatch, RouteRegistry, RouteTable

__all__ = [
    "DELETE",
    "LIST",
    "MODIFY",
    "Operation",
    "Route",
    "RouteMatch",
    "RouteRegistry",
    "RouteTable",
    "SAVE",
    "WellKnownOperation",
]
