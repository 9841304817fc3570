from flatapi.envelope.errors import (
    ApplicationError,
    ErrorDetail,
    InvalidMetaCode,
    MalformedEnvelope,
    RouteNotFound,
    Unauthorized,
    classify_exception,
)


def test_classification_maps_envelope_errors() -> None:
    row = classify_exception(RouteNotFound())
    assert row.meta_code == 404
    assert row.error_code == "route_not_found"
    assert row.internal is False


def test_classification_marks_server_side_faults_internal() -> None:
    row = classify_exception(InvalidMetaCode(302))
    assert row.meta_code == 500
    assert row.internal is True


def test_classification_hides_unexpected_exceptions() -> None:
    row = classify_exception(KeyError("secret"))
    assert row.meta_code == 500
    assert row.error_code == "internal_error"
    assert "secret" not in row.message


def test_classification_maps_memory_error() -> None:
    row = classify_exception(MemoryError())
    assert row.meta_code == 503
    assert row.error_code == "resource_exhausted"


def test_application_error_carries_handler_values() -> None:
    err = ApplicationError(409, "Email already taken", error_code="email_taken", details=[ErrorDetail("email", "taken")])
    assert err.meta_code == 409
    assert err.error_code == "email_taken"
    assert err.details[0].to_dict() == {"field": "email", "message": "taken"}


def test_default_messages() -> None:
    assert Unauthorized().message == "Unauthorized"
    assert MalformedEnvelope().meta_code == 400
    assert ApplicationError(422).message == ""
