from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from flatapi.envelope.errors import ErrorDetail, InvalidPagination, MalformedEnvelope

PAGE_KEYS = ("page", "page_size")


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int
    total: int | None = None
    page_total: int | None = None

    def __post_init__(self) -> None:
        if self.page < 1 or self.page_size < 1:
            raise InvalidPagination(details=[ErrorDetail("page", "page and page_size must be at least 1.")])
        if self.total is not None and self.total < 0:
            raise InvalidPagination(details=[ErrorDetail("total", "total must not be negative.")])
        if self.total is None:
            if self.page_total is not None:
                raise InvalidPagination(
                    details=[ErrorDetail("page_total", "page_total requires total; send both or neither.")]
                )
            return
        expected = math.ceil(self.total / self.page_size)
        if self.page_total is None:
            object.__setattr__(self, "page_total", expected)
        elif self.page_total != expected:
            raise InvalidPagination(
                details=[ErrorDetail("page_total", f"page_total must be {expected} for total {self.total}.")]
            )

    def to_meta_fields(self) -> dict[str, int]:
        fields = {"page": self.page, "page_size": self.page_size}
        if self.total is not None:
            fields["total"] = self.total
            fields["page_total"] = self.page_total
        return fields


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    page_size: int = 25

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @classmethod
    def from_filter(
        cls,
        filter_: Mapping[str, Any] | None,
        *,
        default_size: int = 25,
        max_size: int = 200,
    ) -> "PageRequest":
        values = dict(filter_ or {})
        errors: list[ErrorDetail] = []
        page = values.get("page", 1)
        page_size = values.get("page_size", default_size)
        for key, value in (("page", page), ("page_size", page_size)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                errors.append(ErrorDetail(f"filter.{key}", "Expected a positive integer."))
        if errors:
            raise MalformedEnvelope("Invalid pagination request.", details=errors)
        return cls(page=page, page_size=min(page_size, max_size))

    def slice(self, items: Sequence[Any]) -> list[Any]:
        return list(items[self.offset:self.offset + self.page_size])


def criteria(filter_: Mapping[str, Any] | None) -> dict[str, Any]:
    """Filter entries with the paging keys removed."""
    return {key: value for key, value in (filter_ or {}).items() if key not in PAGE_KEYS}


def paginate(items: Sequence[Any], page_request: PageRequest, *, with_total: bool = True) -> tuple[list[Any], Pagination]:
    page_items = page_request.slice(items)
    pagination = Pagination(
        page=page_request.page,
        page_size=page_request.page_size,
        total=len(items) if with_total else None,
    )
    return page_items, pagination
