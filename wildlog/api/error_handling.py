from __future__ import annotations

from typing import Any, Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from wildlog.api.cookies import clear_session_cookie
from wildlog.api.schemas import ErrorResponse
from wildlog.config import get_settings
from wildlog.logging import get_logger
from wildlog.service.errors import ServiceError, SessionExpiredError
from wildlog.storage.errors import ConstraintViolation

logger = get_logger(__name__)

VALIDATION_FAILED = "Validation failed"
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def _error_response(
    status_code: int, message: str, details: Optional[dict] = None
) -> JSONResponse:
    body = ErrorResponse(error=message, details=details or None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _field_path(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc]
    if len(parts) > 1 and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def _clean_message(message: str) -> str:
    # pydantic prefixes messages from field validators
    return message.removeprefix("Value error, ")


def validation_details(errors: Iterable[dict]) -> dict[str, str]:
    """Collapse pydantic errors to one message per offending field."""
    details: dict[str, str] = {}
    for error in errors:
        if error.get("type") == "json_invalid":
            details.setdefault("body", "Invalid JSON")
            continue
        if error.get("type") == "extra_forbidden":
            details.setdefault(_field_path(error.get("loc", ())), "Unknown field")
            continue
        details.setdefault(_field_path(error.get("loc", ())), _clean_message(error.get("msg", "")))
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers rendering every failure as ``{error, details?}``."""

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = validation_details(exc.errors())
        logger.info(
            "request_validation_failed",
            path=request.url.path,
            method=request.method,
            fields=sorted(details),
        )
        return _error_response(400, VALIDATION_FAILED, details)

    @app.exception_handler(ConstraintViolation)
    async def handle_constraint_violation(request: Request, exc: ConstraintViolation):
        logger.warning(
            "constraint_violation",
            path=request.url.path,
            method=request.method,
            message=exc.message,
            detail=exc.detail,
        )
        return _error_response(409, exc.message)

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(
            "service_error",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            message=exc.message,
        )
        response = _error_response(exc.status_code, exc.message, exc.detail)
        if isinstance(exc, SessionExpiredError):
            clear_session_cookie(response, secure=get_settings().session_cookie_secure)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        return _error_response(exc.status_code, message)

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception):
        logger.exception(
            "unhandled_exception",
            exc_info=exc,
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )
        return _error_response(500, "Internal server error")
