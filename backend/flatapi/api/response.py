from fastapi import Request, Response

from flatapi.envelope import codec
from flatapi.envelope.meta import build_error, transport_status
from flatapi.schemas.envelope import ResponseEnvelope

JSON_MEDIA_TYPE = "application/json"


def envelope_response(envelope: ResponseEnvelope) -> Response:
    return Response(
        content=codec.encode(envelope),
        status_code=transport_status(envelope),
        media_type=JSON_MEDIA_TYPE,
    )


def exception_envelope(
    request: Request,
    meta_code: int,
    message: str,
    code: str,
    details: list[dict] | None = None,
) -> Response:
    """Render a framework-level failure; 4xx stays inside meta with transport 200."""
    request.state.meta_code = meta_code
    envelope = build_error(meta_code, message, details, error_code=code)
    return envelope_response(envelope)
