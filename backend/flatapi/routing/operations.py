from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

SEGMENT_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")


class WellKnownOperation(str, Enum):
    LIST = "list"
    SAVE = "save"
    MODIFY = "modify"
    DELETE = "delete"


@dataclass(frozen=True)
class Operation:
    """A path verb: one of the well-known operations or a custom one."""

    name: str
    well_known: WellKnownOperation | None = None

    def __post_init__(self) -> None:
        if not is_valid_segment(self.name):
            raise ValueError(f"Operation name {self.name!r} is not a path-segment-safe identifier.")

    @property
    def is_custom(self) -> bool:
        return self.well_known is None

    @classmethod
    def custom(cls, name: str) -> "Operation":
        return cls(name=name)

    @classmethod
    def parse(cls, value: "str | Operation | WellKnownOperation") -> "Operation":
        if isinstance(value, Operation):
            return value
        if isinstance(value, WellKnownOperation):
            return cls(name=value.value, well_known=value)
        try:
            return cls(name=value, well_known=WellKnownOperation(value))
        except ValueError:
            return cls.custom(value)

    def __str__(self) -> str:
        return self.name


def is_valid_segment(value: object) -> bool:
    return isinstance(value, str) and bool(SEGMENT_PATTERN.match(value))


def normalize_resource(resource: str) -> str:
    """Validate a (possibly multi-segment) resource name such as ``document/pages``."""
    parts = resource.strip("/").split("/") if isinstance(resource, str) else []
    if not parts or not all(is_valid_segment(part) for part in parts):
        raise ValueError(f"Resource {resource!r} must be one or more path-segment-safe names.")
    return "/".join(parts)


LIST = Operation.parse(WellKnownOperation.LIST)
SAVE = Operation.parse(WellKnownOperation.SAVE)
MODIFY = Operation.parse(WellKnownOperation.MODIFY)
DELETE = Operation.parse(WellKnownOperation.DELETE)
