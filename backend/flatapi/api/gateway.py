from fastapi import APIRouter, Depends, Request, Response

from flatapi.api.response import JSON_MEDIA_TYPE, envelope_response
from flatapi.core.middleware.request_size_limit import payload_too_large
from flatapi.services.dispatch_service import Dispatcher

router = APIRouter(tags=["envelope"])

ALLOWED_METHODS = "POST, HEAD, OPTIONS"


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


@router.post("/{path:path}")
async def dispatch_envelope(
    path: str,
    request: Request,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> Response:
    body = await request.body()
    limit = dispatcher.settings.max_request_body_bytes
    if len(body) > limit:
        exc = payload_too_large(limit)
        request.state.meta_code = exc.meta_code
        return envelope_response(dispatcher.error_envelope(exc))

    result = await dispatcher.dispatch(
        f"/{path}",
        body,
        authorization=request.headers.get("Authorization"),
        request_id=getattr(request.state, "request_id", None),
    )
    request.state.meta_code = result.envelope.meta.code
    if result.route is not None:
        request.state.envelope_route = result.route.path
    return Response(content=result.body, status_code=result.status_code, media_type=JSON_MEDIA_TYPE)


@router.head("/{path:path}")
async def route_exists(path: str, dispatcher: Dispatcher = Depends(get_dispatcher)) -> Response:
    """Existence check: status only, no envelope."""
    match = dispatcher.find(f"/{path}")
    if match is None:
        return Response(status_code=404)
    return Response(status_code=200, headers={"X-Route-Version": str(match.route.version)})


@router.options("/{path:path}")
async def route_options(path: str) -> Response:
    return Response(status_code=200, headers={"Allow": ALLOWED_METHODS})
