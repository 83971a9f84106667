"""Request ID middleware — one id per request, one access log line.

Learn: The id comes from an incoming X-Request-ID header or is generated.
It is bound into structlog's contextvars so every log event emitted while
handling the request carries it, and it is echoed back in the response.

An exception that escapes the route is turned into the ServerError body
here, inside the stack, so a 500 still passes back out through the
security and CORS middleware and carries the request id.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bugtracker.errors import unhandled_error_handler

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for logging and report each request on completion."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            response = await unhandled_error_handler(request, exc)
        logger.info(
            "request.completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
