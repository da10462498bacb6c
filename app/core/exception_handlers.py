"""Global exception handlers for consistent error responses.

Every error leaves the API in the same envelope::

    {"error": {"code": ..., "message": ..., "request_id": ..., "details": {...}}}

AppError subclasses map to a status code; anything else is a generic 500
that never leaks internals.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    NotFoundAppError,
    PersistenceAppError,
    UpstreamAppError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (AuthenticationAppError, 403),
    (NotFoundAppError, 404),
    (UpstreamAppError, 502),
    (PersistenceAppError, 500),
)


def status_for(exc: AppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError with the status code of its type."""

    status_code = status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(status_code=status_code, content={"error": error_content})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed query/body parameters as a 400 in the common envelope."""

    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    logger.info(
        "request_validation_failed",
        extra={"request_path": request.url.path, "fields": fields},
    )
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "request_validation_failed",
                "message": "Bad request",
                "request_id": get_request_id(),
                "details": {"context": {"fields": fields}},
            }
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for unexpected errors: log the detail, return a generic 500."""

    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the handlers on ``app`` (specific before general)."""

    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
