from fastapi import APIRouter, Request, Response

from flatapi.api.response import envelope_response
from flatapi.envelope.meta import build_success

router = APIRouter(tags=["ops"])


@router.get("/health")
def health(request: Request) -> Response:
    registry = request.app.state.dispatcher.registry
    return envelope_response(
        build_success(
            200,
            {
                "status": "ok",
                "routes": len(registry),
                "frozen": registry.frozen,
            },
        )
    )
