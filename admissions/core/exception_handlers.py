"""Global exception handlers.

Every error leaves the service as `{"type": ..., "message": ...}` so clients
can branch on `type`. Retryable store outages also carry `Retry-After`.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from admissions.core.exceptions import AppException, StoreUnavailableError

logger = logging.getLogger("admissions.exception")


def _error_body(error_type: str, message: str) -> dict[str, str]:
    return {"type": error_type, "message": message}


def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render an AppException with its own status and type."""
    extra = {
        "request_id": getattr(request.state, "request_id", None),
        "method": request.method,
        "path": request.url.path,
        "status_code": exc.status_code,
        "error_type": exc.error_type,
    }
    headers: dict[str, str] = {}
    if isinstance(exc, StoreUnavailableError):
        headers["Retry-After"] = str(exc.retry_after_seconds)
        logger.warning("Store unavailable: %s", exc.message, extra=extra)
    elif exc.status_code >= 500:
        logger.error("%s: %s", exc.error_type, exc.message, extra=extra)
    else:
        logger.info("%s: %s", exc.error_type, exc.message, extra=extra)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_type, exc.message),
        headers=headers or None,
    )


def http_exception_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Handle HTTPException raised by FastAPI/Starlette internals."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("http_error", str(exc.detail)),
    )


def validation_exception_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with unified format."""
    messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        messages.append(f"{field}: {error['msg']}" if field else error["msg"])

    return JSONResponse(
        status_code=422,
        content=_error_body("validation_error", "; ".join(messages)),
    )


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected errors."""
    logger.error(
        "Unhandled exception: %s %s - %s",
        request.method,
        request.url.path,
        exc,
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "method": request.method,
            "path": request.url.path,
            "status_code": 500,
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content=_error_body("internal_error", "An unexpected error occurred"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
