"""HTTP routes exposed by the native host.

- GET  /health   - liveness and channel state
- GET  /event    - server-sent events until the relay disconnects
- POST /navigate - send a navigate command to the relay
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, StreamingResponse
from starlette.routing import Route

from ..errors import SendError
from .bridge import NativeHostBridge


class NavigateRequest(BaseModel):
    """Body of POST /navigate."""

    url: str


def _bridge(request: Request) -> NativeHostBridge:
    return request.app.state.bridge


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "ok", "connected": _bridge(request).connected})


async def sse_endpoint(request: Request) -> StreamingResponse:
    """Server-sent events for the bridge; the response ends when the relay does."""
    events = _bridge(request).events()

    async def frames():
        async for event in events:
            yield f"data: {json.dumps(event)}\n\n"

    return StreamingResponse(frames(), media_type="text/event-stream", headers={"Cache-Control": "no-cache"})


async def navigate(request: Request) -> JSONResponse:
    """Forward a navigate command to the relay."""
    try:
        body = NavigateRequest.model_validate_json(await request.body())
    except ValidationError as e:
        return JSONResponse({"error": "invalid request", "details": [err["msg"] for err in e.errors()]}, status_code=422)

    try:
        command = _bridge(request).navigate(body.url)
    except SendError as e:
        return JSONResponse({"error": str(e)}, status_code=503)

    return JSONResponse(command.to_wire(), status_code=202)


host_routes = [
    Route("/health", health_check, methods=["GET"]),
    Route("/event", sse_endpoint, methods=["GET"]),
    Route("/navigate", navigate, methods=["POST"]),
]
