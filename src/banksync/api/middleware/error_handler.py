"""Global error handling.

Every failure is rendered as
``{error, code, correlationId, details?, suggestion, retryAllowed}`` with the
HTTP status from the error catalog.
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from banksync.config import settings
from banksync.core.errors import get_error
from banksync.core.exceptions import BankSyncError, UpstreamRateLimitError

logger = logging.getLogger(__name__)


def _correlation_id(request: Request, exc: BankSyncError | None = None) -> str:
    if exc is not None and exc.correlation_id:
        return exc.correlation_id
    return getattr(request.state, "correlation_id", None) or "unknown"


def error_response(
    request: Request,
    code: str,
    http_status: int | None = None,
    details: dict[str, Any] | None = None,
    correlation_id: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    error_info = get_error(code)
    content: dict[str, Any] = {
        "error": error_info["user_message"],
        "code": code,
        "correlationId": correlation_id or _correlation_id(request),
        "suggestion": error_info["suggestion"],
        "retryAllowed": error_info["retry_allowed"],
    }
    if details:
        content["details"] = details
    return JSONResponse(
        status_code=http_status or error_info["http_status"],
        content=content,
        headers=headers,
    )


async def handle_bank_sync_error(request: Request, exc: BankSyncError) -> JSONResponse:
    """Handle pipeline exceptions.

    Args:
        request: The incoming request
        exc: The pipeline exception

    Returns:
        JSONResponse with error details from catalog
    """
    correlation_id = _correlation_id(request, exc)
    extra = {
        "correlation_id": correlation_id,
        "error_code": exc.error_code,
        "path": request.url.path,
        "method": request.method,
    }
    if settings.debug:
        extra["details"] = exc.details

    log = logger.error if exc.http_status >= 500 else logger.warning
    log(f"Request failed with {exc.error_code}", extra=extra)

    headers = None
    if isinstance(exc, UpstreamRateLimitError) and exc.retry_after_seconds:
        headers = {"Retry-After": str(exc.retry_after_seconds)}

    return error_response(
        request,
        exc.error_code,
        http_status=exc.http_status,
        details=exc.details,
        correlation_id=correlation_id,
        headers=headers,
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors.

    Absent required fields map to MISSING_FIELDS, anything else to
    INVALID_REQUEST.
    """
    errors = exc.errors()
    missing = []
    invalid = []
    for error in errors:
        field = ".".join(str(x) for x in error.get("loc", []) if x != "body")
        if error.get("type") == "missing":
            missing.append(field)
        else:
            invalid.append(field)

    extra = {"correlation_id": _correlation_id(request), "path": request.url.path, "method": request.method}
    if settings.debug:
        extra["errors"] = errors
    logger.warning(f"Validation error on {request.url.path}", extra=extra)

    if missing and not invalid:
        return error_response(request, "MISSING_FIELDS", details={"missing": missing})
    return error_response(request, "INVALID_REQUEST", details={"fields": missing + invalid})


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    """Handle database integrity errors.

    Do not log str(exc): it can include SQL + bound parameters.
    """
    extra = {"correlation_id": _correlation_id(request), "path": request.url.path, "method": request.method}
    if settings.debug:
        logger.exception(f"Database integrity error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Database integrity error on {request.url.path}", extra=extra)

    return error_response(request, "DB_UPSERT_FAILED")


async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without exposing internals."""
    extra = {
        "correlation_id": _correlation_id(request),
        "error_type": type(exc).__name__,
        "path": request.url.path,
        "method": request.method,
    }
    # In non-debug: do not log str(exc) or traceback (may include sensitive data).
    if settings.debug:
        logger.exception(f"Unexpected error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Unexpected error on {request.url.path}", extra=extra)

    return error_response(request, "INTERNAL_ERROR", http_status=status.HTTP_500_INTERNAL_SERVER_ERROR)
