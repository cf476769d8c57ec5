"""Exception handlers that render every failure as one JSON error shape.

The body always carries ``error`` (exception class), ``kind`` (stable error
kind clients switch on), ``message`` and ``path``.
"""

from typing import Any

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException, NoMoreInScopeException

logger = structlog.get_logger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    kind: str,
    message: Any,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    content = {"error": error, "kind": kind, "message": message, "path": request.url.path, **extra}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render a domain error.

    ``NoMoreInScope`` also reports the serving number left in place, so the
    dashboard can show it without a second request.
    """
    if exc.status_code >= 500:
        logger.warning("request_downstream_error", kind=exc.kind, error=exc.message)

    extra: dict[str, Any] = {}
    if isinstance(exc, NoMoreInScopeException):
        extra["current_number"] = exc.current_number

    return _error_response(request, exc.status_code, exc.__class__.__name__, exc.kind, exc.message, **extra)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing and framework HTTP errors (404 route, 405, bearer scheme)."""
    return _error_response(
        request,
        exc.status_code,
        "HTTPException",
        "HTTPError",
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Strip non-serialisable context (e.g. raised ValueErrors) from pydantic errors."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body, path and query validation failures."""
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "ValidationError",
        "Request validation failed",
        details=jsonable_errors(exc),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log anything unexpected and hide its details from the caller."""
    logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "InternalError",
        "An unexpected error occurred",
    )
