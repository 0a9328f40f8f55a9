"""FastAPI route handlers."""

import json
import time
from json import JSONDecodeError
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from core.config import Config
from core.exceptions import InvalidJSON, RequestTooLarge
from core.protocols import RequestLogger
from core.request_types import InboundRequest, OutboundResponse
from services.forwarder import INTERNAL_ERROR_MESSAGE

# Statuses whose responses must not carry a body
BODILESS_STATUSES = frozenset({204, 205, 304})


async def _parse_json_body(request: Request, max_body_size: int) -> Any:
    """Parse the request body as JSON; an empty body reads as ``{}``.

    Raises:
        RequestTooLarge: body exceeds ``max_body_size`` bytes.
        InvalidJSON: body is not valid JSON.
    """
    raw_body = await request.body()
    if len(raw_body) > max_body_size:
        raise RequestTooLarge(len(raw_body), max_body_size)
    if not raw_body.strip():
        return {}

    try:
        return json.loads(raw_body.decode("utf-8"))
    except (JSONDecodeError, UnicodeDecodeError, ValueError) as e:
        raw_text = raw_body.decode("utf-8", errors="replace")
        raise InvalidJSON(f"Invalid JSON: {e}", raw_text) from e


def render_response(outbound: OutboundResponse) -> Response:
    """Write an OutboundResponse as an HTTP response."""
    if outbound.status_code in BODILESS_STATUSES or outbound.status_code < 200:
        return Response(status_code=outbound.status_code)
    try:
        return JSONResponse(outbound.payload, status_code=outbound.status_code)
    except (TypeError, ValueError) as e:
        # e.g. NaN in a destination body, which strict JSON cannot carry
        return JSONResponse(
            {"success": False, "message": INTERNAL_ERROR_MESSAGE, "details": str(e)},
            status_code=500,
        )


def _rejection(status: int, message: str) -> Response:
    return JSONResponse({"success": False, "message": message}, status_code=status)


async def handle_relay(
    request: Request,
    config: Config,
    logger: RequestLogger,
) -> Response:
    """Handle POST /api/apps-script: relay to the destination."""
    started = time.perf_counter()
    headers = dict(request.headers)

    try:
        body = await _parse_json_body(request, config.limits.max_body_size)
    except RequestTooLarge as e:
        logger.log_request(request.url.path, headers, f"<{e.size} bytes, over the {e.limit} byte limit>")
        logger.log_error(request.url.path, 413, str(e))
        logger.log_response(413, _elapsed_ms(started), forwarded=False)
        return _rejection(413, "Request body too large")
    except InvalidJSON as e:
        logger.log_request(request.url.path, headers, e.raw_text)
        logger.log_error(request.url.path, 400, str(e))
        logger.log_response(400, _elapsed_ms(started), forwarded=False)
        return _rejection(400, str(e))

    logger.log_request(request.url.path, headers, body)

    forwarder = request.app.state.forwarder
    outbound = await forwarder.forward(InboundRequest(headers=headers, body=body))
    response = render_response(outbound)

    logger.log_response(response.status_code, _elapsed_ms(started))
    return response


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
