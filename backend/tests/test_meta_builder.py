import pytest

from flatapi.envelope.errors import ErrorDetail, InvalidMetaCode, InvalidPagination
from flatapi.envelope.meta import MetaBuilder, MonotonicClock, build_error, build_success, transport_status
from flatapi.envelope.pagination import Pagination


def _fixed_clock(*values: int) -> MonotonicClock:
    remaining = list(values)
    return MonotonicClock(source=lambda: remaining.pop(0))


def test_build_success_uses_code_table_and_clock() -> None:
    builder = MetaBuilder(clock=_fixed_clock(1734432019759))

    envelope = builder.build_success(201, {"id": 7})

    assert envelope.meta.code == 201
    assert envelope.meta.message == "Created"
    assert envelope.meta.time == 1734432019759
    assert envelope.data == {"id": 7}
    assert envelope.error is None


def test_build_success_allows_message_override() -> None:
    envelope = build_success(200, [], message="Nothing to see")

    assert envelope.meta.message == "Nothing to see"


@pytest.mark.parametrize("code", [202, 204, 301, 400, 404, 500, True, "200"])
def test_build_success_rejects_codes_outside_success_set(code) -> None:
    with pytest.raises(InvalidMetaCode):
        build_success(code, None)


def test_build_error_matches_documented_example() -> None:
    builder = MetaBuilder(clock=_fixed_clock(1734432019759))

    envelope = builder.build_error(401, "Unauthorized", [{"field": "name", "message": "Name is required."}])

    assert envelope.meta.model_dump(exclude_none=True) == {
        "code": 401,
        "message": "Unauthorized",
        "time": 1734432019759,
        "details": [{"field": "name", "message": "Name is required."}],
    }
    assert envelope.data == []


def test_build_error_accepts_error_detail_objects_and_keeps_order() -> None:
    envelope = build_error(
        422,
        details=[ErrorDetail("b", "second field"), ErrorDetail("a", "first field")],
        error_code="validation_failed",
    )

    assert [detail.field for detail in envelope.meta.details] == ["b", "a"]
    assert envelope.meta.message == "Unprocessable Entity"
    assert envelope.error.code == "validation_failed"


@pytest.mark.parametrize("code", [200, 201, 302, 399, 600, -1])
def test_build_error_rejects_codes_outside_error_range(code: int) -> None:
    with pytest.raises(InvalidMetaCode):
        build_error(code)


def test_meta_time_never_decreases_when_wall_clock_steps_back() -> None:
    builder = MetaBuilder(clock=_fixed_clock(1000, 2000, 1500, 2500))

    times = [
        builder.build_success(200).meta.time,
        builder.build_error(500).meta.time,
        builder.build_success(200).meta.time,
        builder.build_error(404).meta.time,
    ]

    assert times == [1000, 2000, 2000, 2500]


def test_default_builder_time_is_monotonic() -> None:
    times = [build_success(200).meta.time for _ in range(50)]

    assert times == sorted(times)


def test_pagination_fields_travel_together() -> None:
    with_total = build_success(200, [], Pagination(page=2, page_size=10, total=35))
    without_total = build_success(200, [], Pagination(page=1, page_size=10))

    assert (with_total.meta.page, with_total.meta.page_total, with_total.meta.total) == (2, 4, 35)
    assert without_total.meta.page == 1
    assert without_total.meta.total is None
    assert without_total.meta.page_total is None


def test_pagination_rejects_page_total_without_total() -> None:
    with pytest.raises(InvalidPagination):
        Pagination(page=1, page_size=10, page_total=3)


def test_transport_status_only_surfaces_created_and_server_errors() -> None:
    assert transport_status(build_success(200)) == 200
    assert transport_status(build_success(201)) == 201
    assert transport_status(build_error(404)) == 200
    assert transport_status(build_error(401)) == 200
    assert transport_status(build_error(503)) == 503
