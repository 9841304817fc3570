"""Flat JSON envelope codec.

Request bodies carry at most ``filter``, ``data``, ``binary64`` and
``binary64gz``. Values inside ``filter`` and ``data`` are scalars or lists;
deeper structure is expressed with dotted keys (``"person.child.name"``)
instead of nested objects.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib
from typing import Any

from pydantic import ValidationError

from flatapi.envelope.errors import ErrorDetail, InvalidBinaryEncoding, MalformedEnvelope
from flatapi.schemas.envelope import BINARY_KEYS, REQUEST_KEYS, RequestEnvelope, ResponseEnvelope

DEFAULT_MAX_DECODED_BYTES = 10_000_000
_SCALARS = (str, int, float, bool)


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, _SCALARS)


def _check_list(path: str, items: list[Any]) -> list[ErrorDetail]:
    errors: list[ErrorDetail] = []
    for index, item in enumerate(items):
        item_path = f"{path}[{index}]"
        if _is_scalar(item):
            continue
        if isinstance(item, list):
            errors.append(ErrorDetail(item_path, "Nested lists are not allowed."))
            continue
        if isinstance(item, dict):
            for key, value in item.items():
                if not _is_scalar(value):
                    errors.append(
                        ErrorDetail(f"{item_path}.{key}", "List entries must be flat objects with scalar values.")
                    )
            continue
        errors.append(ErrorDetail(item_path, "Unsupported value type."))
    return errors


def check_flat(section: str, mapping: dict[str, Any]) -> list[ErrorDetail]:
    """Return one detail per value that breaks the one-level flatness rule."""
    errors: list[ErrorDetail] = []
    for key, value in mapping.items():
        path = f"{section}.{key}"
        if not key:
            errors.append(ErrorDetail(section, "Field names must not be empty."))
        elif _is_scalar(value):
            continue
        elif isinstance(value, list):
            errors.extend(_check_list(path, value))
        elif isinstance(value, dict):
            errors.append(
                ErrorDetail(path, "Nested objects are not allowed; use dotted field names such as 'parent.child'.")
            )
        else:
            errors.append(ErrorDetail(path, "Unsupported value type."))
    return errors


def _check_partial_update(data: dict[str, Any]) -> list[ErrorDetail]:
    errors: list[ErrorDetail] = []
    if "set" in data:
        entries = data["set"]
        if not isinstance(entries, list) or not all(isinstance(entry, dict) for entry in entries):
            errors.append(ErrorDetail("data.set", "Expected a list of flat objects."))
    if "unset" in data:
        fields = data["unset"]
        if not isinstance(fields, list) or not all(isinstance(name, str) and name for name in fields):
            errors.append(ErrorDetail("data.unset", "Expected a list of field names."))
    return errors


def _load_json(raw: bytes | str) -> Any:
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedEnvelope("Request body is not valid JSON.", details=[ErrorDetail("body", str(exc))]) from exc


def decode(
    raw: bytes | str,
    *,
    check_binary: bool = True,
    max_decoded_bytes: int = DEFAULT_MAX_DECODED_BYTES,
) -> RequestEnvelope:
    if not raw or not raw.strip():
        return RequestEnvelope()
    payload = _load_json(raw)
    if not isinstance(payload, dict):
        raise MalformedEnvelope(
            "Request envelope must be a JSON object.",
            details=[ErrorDetail("body", f"Expected an object, got {type(payload).__name__}.")],
        )

    errors = [
        ErrorDetail(key, "Unknown top-level key.")
        for key in payload
        if key not in REQUEST_KEYS
    ]
    for section in ("filter", "data"):
        value = payload.get(section)
        if value is None:
            continue
        if not isinstance(value, dict):
            errors.append(ErrorDetail(section, "Expected an object."))
            continue
        errors.extend(check_flat(section, value))
        if section == "data":
            errors.extend(_check_partial_update(value))
    for key in BINARY_KEYS:
        value = payload.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(ErrorDetail(key, "Expected a base64 string."))
    if payload.get("binary64") is not None and payload.get("binary64gz") is not None:
        errors.append(ErrorDetail("binary64gz", "Only one of binary64 and binary64gz may be present."))
    if errors:
        raise MalformedEnvelope(details=errors)

    try:
        envelope = RequestEnvelope.model_validate(payload)
    except ValidationError as exc:
        raise MalformedEnvelope(
            details=[
                ErrorDetail(".".join(str(part) for part in error["loc"]) or "body", error["msg"])
                for error in exc.errors()
            ]
        ) from exc

    if check_binary:
        validate_binary(envelope, max_decoded_bytes=max_decoded_bytes)
    return envelope


def _gunzip(raw: bytes, *, max_decoded_bytes: int) -> bytes:
    decompressor = zlib.decompressobj(16 + zlib.MAX_WBITS)
    try:
        output = decompressor.decompress(raw, max_decoded_bytes + 1)
    except zlib.error as exc:
        raise InvalidBinaryEncoding(
            "binary64gz does not contain valid gzip data.",
            details=[ErrorDetail("binary64gz", str(exc))],
        ) from exc
    if len(output) > max_decoded_bytes:
        raise InvalidBinaryEncoding(
            "binary64gz expands beyond the allowed size.",
            details=[ErrorDetail("binary64gz", f"Decoded size exceeds {max_decoded_bytes} bytes.")],
        )
    if not decompressor.eof:
        raise InvalidBinaryEncoding(
            "binary64gz does not contain valid gzip data.",
            details=[ErrorDetail("binary64gz", "Compressed stream is truncated.")],
        )
    return output


def validate_binary(
    envelope: RequestEnvelope | ResponseEnvelope,
    *,
    max_decoded_bytes: int = DEFAULT_MAX_DECODED_BYTES,
) -> bytes | None:
    """Decode the envelope's binary field, or return None when it has none."""
    field = "binary64gz" if envelope.binary64gz is not None else "binary64"
    encoded = getattr(envelope, field)
    if encoded is None:
        return None
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (ValueError, binascii.Error) as exc:
        raise InvalidBinaryEncoding(
            f"{field} is not valid base64.",
            details=[ErrorDetail(field, str(exc))],
        ) from exc
    if field == "binary64gz":
        return _gunzip(raw, max_decoded_bytes=max_decoded_bytes)
    if len(raw) > max_decoded_bytes:
        raise InvalidBinaryEncoding(
            "binary64 exceeds the allowed size.",
            details=[ErrorDetail(field, f"Decoded size exceeds {max_decoded_bytes} bytes.")],
        )
    return raw


def encode_binary(payload: bytes, *, compress: bool = False) -> dict[str, str]:
    if compress:
        return {"binary64gz": base64.b64encode(gzip.compress(payload)).decode("ascii")}
    return {"binary64": base64.b64encode(payload).decode("ascii")}


def _dumps(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def encode_request(envelope: RequestEnvelope) -> bytes:
    payload = {key: getattr(envelope, key) for key in sorted(REQUEST_KEYS)}
    return _dumps({key: value for key, value in payload.items() if value is not None})


def to_payload(envelope: ResponseEnvelope) -> dict[str, Any]:
    payload: dict[str, Any] = {"meta": envelope.meta.model_dump(exclude_none=True)}
    data = envelope.data
    if isinstance(data, dict):
        errors = check_flat("data", data)
    elif isinstance(data, list):
        errors = _check_list("data", data)
    elif _is_scalar(data):
        errors = []
    else:
        errors = [ErrorDetail("data", "Unsupported value type.")]
    if errors:
        raise MalformedEnvelope("Response data is not flat.", details=errors)
    if data is not None:
        payload["data"] = data
    if envelope.error is not None:
        payload["error"] = envelope.error.model_dump()
    for key in BINARY_KEYS:
        value = getattr(envelope, key)
        if value is not None:
            payload[key] = value
    return payload


def encode(envelope: ResponseEnvelope) -> bytes:
    return _dumps(to_payload(envelope))
