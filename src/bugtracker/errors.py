"""Error taxonomy and its HTTP rendering.

Learn: Services and dependencies raise these; a single exception handler
registered in main.py turns them into
{"success": false, "error": {"kind": ..., "message": ...}} responses.
Each kind carries its own status code, so routes never pick codes by hand.
"""

from typing import Any, Optional

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class TrackerError(Exception):
    """Base class — every error has a machine-checkable kind and a message."""

    kind = "ServerError"
    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, **self.extra}


class Unauthenticated(TrackerError):
    """No token, a bad or expired token, or the account is gone (401).

    clear_cookie tells the response layer to overwrite the session cookie
    so a stale token is not resubmitted.
    """

    kind = "Unauthenticated"
    status_code = 401

    def __init__(self, message: str, clear_cookie: bool = False, **extra: Any):
        super().__init__(message, **extra)
        self.clear_cookie = clear_cookie


class InvalidToken(Unauthenticated):
    kind = "InvalidToken"


class ExpiredToken(Unauthenticated):
    kind = "ExpiredToken"


class Forbidden(TrackerError):
    kind = "Forbidden"
    status_code = 403


class NotFound(TrackerError):
    kind = "NotFound"
    status_code = 404


class ValidationError(TrackerError):
    kind = "ValidationError"
    status_code = 400


class Conflict(TrackerError):
    """A unique value is already taken (duplicate email, project name...)."""

    kind = "Conflict"
    status_code = 400


class CascadeFailure(TrackerError):
    """A child-deletion step failed mid-cascade.

    partially_deleted lists the ids whose deletion was issued before the
    failing step, so callers can reconcile.
    """

    kind = "CascadeFailure"
    status_code = 500

    def __init__(
        self,
        message: str,
        partially_deleted: Optional[list[str]] = None,
        rolled_back: bool = False,
    ):
        super().__init__(
            message,
            partially_deleted=partially_deleted or [],
            rolled_back=rolled_back,
        )
        self.partially_deleted = partially_deleted or []
        self.rolled_back = rolled_back


# ─── Handlers ────────────────────────────────────────────


def clear_token_cookie(response, request: Request) -> None:
    """Overwrite the session cookie with 'none' and a 10 second lifetime."""
    settings = request.app.state.settings
    response.set_cookie(
        settings.token_cookie_name,
        "none",
        max_age=10,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request.failed", kind=exc.kind, error=exc.message, **exc.extra)
    else:
        logger.info("request.rejected", kind=exc.kind, error=exc.message)

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    response = JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
        headers=headers,
    )
    if isinstance(exc, Unauthenticated) and exc.clear_cookie:
        clear_token_cookie(response, request)
    return response


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body/query schema violations are ValidationError (400), not 422."""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    err = ValidationError(", ".join(messages) or "Invalid request")
    return await tracker_error_handler(request, err)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {"kind": "ServerError", "message": "Server Error"},
        },
    )
