"""
Response envelope and exception handlers.

Every /api response uses the envelope:
    {"success": true, "data": ...}
    {"success": false, "error": "...", "details": ...}

FastAPI's own request validation errors (malformed JSON, wrong body
types) are mapped into the same envelope with status 400, so clients
only ever see one error shape.
"""

from __future__ import annotations

from typing import Any, Final

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from stream_classifier.core.logging import get_logger

logger = get_logger(__name__)

ERROR_INVALID_REQUEST: Final[str] = "Invalid request"
ERROR_INTERNAL: Final[str] = "Internal server error"


def success_response(data: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Build a success envelope."""
    return JSONResponse(content={"success": True, "data": data}, status_code=status_code)


def error_response(
    error: str,
    status_code: int,
    details: Any = None,
) -> JSONResponse:
    """Build a failure envelope; `details` is omitted when None."""
    content: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(content=content, status_code=status_code)


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        message = err.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Map FastAPI request validation failures to a 400 envelope."""
    details = _describe_validation_errors(exc)
    logger.info("request_rejected", path=request.url.path, details=details)
    return error_response(ERROR_INVALID_REQUEST, status.HTTP_400_BAD_REQUEST, details)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler so unexpected failures keep the envelope shape."""
    logger.error("unhandled_error", path=request.url.path, error=str(exc), exc_info=True)
    return error_response(ERROR_INTERNAL, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope exception handlers on an application."""
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
