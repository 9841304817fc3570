import base64
import gzip
import json

import pytest

from flatapi.envelope import codec
from flatapi.envelope.errors import InvalidBinaryEncoding, MalformedEnvelope
from flatapi.envelope.meta import build_error, build_success
from flatapi.schemas.envelope import RequestEnvelope


def _fields(exc: MalformedEnvelope) -> list[str]:
    return [detail.field for detail in exc.details]


def test_decode_accepts_flat_filter_and_partial_update() -> None:
    raw = json.dumps(
        {
            "filter": {"person.child.name": "John", "age": [18, 30], "active": True},
            "data": {"set": [{"field": "name", "value": "Jane"}], "unset": ["nickname"], "note": None},
        }
    ).encode()

    envelope = codec.decode(raw)

    assert envelope.filter == {"person.child.name": "John", "age": [18, 30], "active": True}
    assert envelope.data["unset"] == ["nickname"]
    assert envelope.binary64 is None


def test_decode_empty_body_is_empty_envelope() -> None:
    assert codec.decode(b"") == RequestEnvelope()
    assert codec.decode(b"   ") == RequestEnvelope()


def test_decode_rejects_nested_object_inside_data() -> None:
    with pytest.raises(MalformedEnvelope) as exc_info:
        codec.decode(b'{"filter":{"name":"John"},"data":{"nested":{"a":1}}}')

    assert exc_info.value.meta_code == 400
    assert _fields(exc_info.value) == ["data.nested"]


@pytest.mark.parametrize("key", ["meta", "error", "page", "Filter", "extra"])
def test_decode_rejects_unknown_top_level_keys(key: str) -> None:
    with pytest.raises(MalformedEnvelope) as exc_info:
        codec.decode(json.dumps({"filter": {}, key: 1}).encode())

    assert key in _fields(exc_info.value)


@pytest.mark.parametrize("raw", [b"[]", b'"text"', b"42", b"null", b"{not json"])
def test_decode_rejects_non_object_bodies(raw: bytes) -> None:
    with pytest.raises(MalformedEnvelope):
        codec.decode(raw)


def test_decode_rejects_nested_structures_inside_lists() -> None:
    raw = json.dumps({"filter": {"ids": [[1, 2]], "tags": [{"name": {"x": 1}}]}}).encode()

    with pytest.raises(MalformedEnvelope) as exc_info:
        codec.decode(raw)

    assert _fields(exc_info.value) == ["filter.ids[0]", "filter.tags[0].name"]


def test_decode_validates_partial_update_lists() -> None:
    with pytest.raises(MalformedEnvelope) as exc_info:
        codec.decode(b'{"data":{"set":"name","unset":[1]}}')

    assert _fields(exc_info.value) == ["data.set", "data.unset"]


def test_decode_rejects_both_binary_fields() -> None:
    payload = base64.b64encode(b"abc").decode()
    with pytest.raises(MalformedEnvelope) as exc_info:
        codec.decode(json.dumps({"binary64": payload, "binary64gz": payload}).encode())

    assert "binary64gz" in _fields(exc_info.value)


def test_decode_rejects_invalid_base64() -> None:
    with pytest.raises(InvalidBinaryEncoding) as exc_info:
        codec.decode(b'{"binary64":"not base64!!"}')

    assert exc_info.value.error_code == "invalid_binary_encoding"


def test_decode_can_defer_binary_validation() -> None:
    envelope = codec.decode(b'{"binary64":"not base64!!"}', check_binary=False)

    with pytest.raises(InvalidBinaryEncoding):
        codec.validate_binary(envelope)


def test_validate_binary_decodes_gzip_payload() -> None:
    envelope = RequestEnvelope(**codec.encode_binary(b"hello world", compress=True))

    assert codec.validate_binary(envelope) == b"hello world"


def test_validate_binary_rejects_base64_that_is_not_gzip() -> None:
    envelope = RequestEnvelope(binary64gz=base64.b64encode(b"plain bytes").decode())

    with pytest.raises(InvalidBinaryEncoding):
        codec.validate_binary(envelope)


def test_validate_binary_caps_decompressed_size() -> None:
    envelope = RequestEnvelope(binary64gz=base64.b64encode(gzip.compress(b"x" * 1000)).decode())

    with pytest.raises(InvalidBinaryEncoding):
        codec.validate_binary(envelope, max_decoded_bytes=100)


def test_validate_binary_returns_none_without_binary_field() -> None:
    assert codec.validate_binary(RequestEnvelope(filter={"a": 1})) is None


def test_request_round_trip_preserves_content() -> None:
    original = RequestEnvelope(
        filter={"name": "John", "address.city": None},
        data={"unset": ["age"]},
        **codec.encode_binary(b"\x00\x01"),
    )

    assert codec.decode(codec.encode_request(original)) == original


def test_encode_response_drops_absent_fields() -> None:
    payload = json.loads(codec.encode(build_success(200, {"id": 1, "name": None})))

    assert set(payload) == {"meta", "data"}
    assert payload["data"] == {"id": 1, "name": None}
    assert set(payload["meta"]) == {"code", "message", "time"}


def test_encode_error_response_contains_error_and_details() -> None:
    payload = json.loads(codec.encode(build_error(404, details=[{"field": "path", "message": "missing"}])))

    assert payload["data"] == []
    assert payload["error"] == {"code": "http_404", "message": "Not Found"}
    assert payload["meta"]["details"] == [{"field": "path", "message": "missing"}]


def test_encode_rejects_nested_response_data() -> None:
    with pytest.raises(MalformedEnvelope):
        codec.encode(build_success(200, {"user": {"id": 1}}))
