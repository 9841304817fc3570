import pytest

from flatapi.envelope.errors import InvalidPagination, MalformedEnvelope
from flatapi.envelope.pagination import PageRequest, Pagination, criteria, paginate


def test_page_total_is_computed_from_total() -> None:
    assert Pagination(page=1, page_size=10, total=0).page_total == 0
    assert Pagination(page=1, page_size=10, total=10).page_total == 1
    assert Pagination(page=1, page_size=10, total=11).page_total == 2


def test_explicit_page_total_must_agree_with_total() -> None:
    pagination = Pagination(page=1, page_size=10, total=11, page_total=2)

    assert pagination.to_meta_fields() == {"page": 1, "page_size": 10, "total": 11, "page_total": 2}
    with pytest.raises(InvalidPagination):
        Pagination(page=1, page_size=10, total=11, page_total=5)


def test_meta_fields_omit_totals_when_unknown() -> None:
    assert Pagination(page=3, page_size=5).to_meta_fields() == {"page": 3, "page_size": 5}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"page": 0, "page_size": 10},
        {"page": 1, "page_size": 0},
        {"page": 1, "page_size": 10, "total": -1},
        {"page": 1, "page_size": 10, "total": 5, "page_total": -2},
        {"page": 1, "page_size": 10, "total": 0, "page_total": 1},
    ],
)
def test_invalid_pagination_values(kwargs: dict) -> None:
    with pytest.raises(InvalidPagination):
        Pagination(**kwargs)


def test_page_request_defaults_and_clamps() -> None:
    assert PageRequest.from_filter(None, default_size=25, max_size=200) == PageRequest(page=1, page_size=25)
    assert PageRequest.from_filter({"page": 3, "page_size": 500}, default_size=25, max_size=200) == PageRequest(
        page=3, page_size=200
    )


@pytest.mark.parametrize("filter_", [{"page": 0}, {"page": "2"}, {"page_size": True}, {"page_size": 1.5}])
def test_page_request_rejects_bad_values(filter_: dict) -> None:
    with pytest.raises(MalformedEnvelope):
        PageRequest.from_filter(filter_)


def test_paginate_slices_and_counts() -> None:
    items, pagination = paginate(list(range(12)), PageRequest(page=2, page_size=5))

    assert items == [5, 6, 7, 8, 9]
    assert (pagination.total, pagination.page_total) == (12, 3)


def test_paginate_without_total() -> None:
    items, pagination = paginate(["a", "b", "c"], PageRequest(page=2, page_size=2), with_total=False)

    assert items == ["c"]
    assert pagination.to_meta_fields() == {"page": 2, "page_size": 2}


def test_criteria_drops_paging_keys() -> None:
    assert criteria({"name": "John", "page": 2, "page_size": 10}) == {"name": "John"}
    assert criteria(None) == {}
