"""Error types raised by the services and the handlers that render them."""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from .core.config import get_settings
from .core.context import REQUEST_ID_HEADER, bind_request_id, reset_request_id
from .schemas.system import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


class ApplicationError(Exception):
    """Base class for domain-specific errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "application_error",
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Sequence[ErrorDetail] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = list(details) if details is not None else None
        self.headers = dict(headers) if headers else None


class ValidationError(ApplicationError):
    """Malformed or semantically invalid input."""

    def __init__(
        self,
        message: str = "Validation error",
        *,
        code: str = "validation_error",
        details: Sequence[ErrorDetail] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class AuthenticationError(ApplicationError):
    """Missing, invalid or expired credentials."""

    def __init__(self, message: str = "Invalid or expired token", *, code: str = "unauthorized") -> None:
        super().__init__(
            message,
            code=code,
            status_code=status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFoundError(ApplicationError):
    """Absent record, or a record outside the caller's capabilities."""

    def __init__(self, message: str = "Resource not found", *, code: str = "not_found") -> None:
        super().__init__(message, code=code, status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(ApplicationError):
    """Write rejected because it would duplicate existing data."""

    def __init__(self, message: str, *, code: str = "conflict") -> None:
        super().__init__(message, code=code, status_code=status.HTTP_400_BAD_REQUEST)


class InvalidReferenceError(ApplicationError):
    """Input refers to a record the caller does not own."""

    def __init__(self, message: str, *, code: str = "invalid_reference") -> None:
        super().__init__(message, code=code, status_code=status.HTTP_400_BAD_REQUEST)


class UpstreamError(ApplicationError):
    """The database or the identity provider failed."""

    def __init__(self, message: str = "Internal server error", *, code: str = "upstream_error") -> None:
        super().__init__(message, code=code, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


Handler = Callable[[Request, Any], Awaitable[JSONResponse]]


def _in_request_context(handler: Handler) -> Handler:
    """Re-bind the request id while ``handler`` runs.

    Handlers for unhandled exceptions run outside the request-id middleware, so
    its binding is already gone by the time they log.
    """

    @functools.wraps(handler)
    async def wrapper(request: Request, exc: Any) -> JSONResponse:
        request_id = getattr(request.state, "request_id", None)
        token = bind_request_id(request_id) if request_id else None
        try:
            return await handler(request, exc)
        finally:
            if token is not None:
                reset_request_id(token)

    return wrapper


def _error_response(
    request: Request,
    *,
    status_code: int,
    message: str,
    details: Sequence[ErrorDetail] | None = None,
    headers: Mapping[str, str] | None = None,
    exc: BaseException | None = None,
) -> JSONResponse:
    payload = ErrorResponse(error=message, details=list(details) if details else None)
    if exc is not None:
        settings = getattr(request.app.state, "settings", None) or get_settings()
        if settings.expose_error_details:
            payload.type = type(exc).__name__
    response = JSONResponse(status_code=status_code, content=payload.model_dump(exclude_none=True))
    if headers:
        response.headers.update(headers)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


def _internal_error(request: Request, exc: BaseException) -> JSONResponse:
    return _error_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        message="Internal server error",
        exc=exc,
    )


def _validation_details(errors: Sequence[Mapping[str, Any]]) -> tuple[str, list[ErrorDetail]]:
    """Flatten pydantic errors into field/message pairs.

    The message names the query string when every error came from it.
    """

    details: list[ErrorDetail] = []
    sources: set[str] = set()
    for error in errors:
        location = list(error.get("loc", ()))
        if location and location[0] in {"body", "query", "path", "header", "cookie"}:
            sources.add(str(location[0]))
            location = location[1:]
        field = ".".join(str(part) for part in location) or "body"
        details.append(ErrorDetail(field=field, message=str(error.get("msg", "Invalid value"))))
    message = "Query validation error" if sources == {"query"} else "Validation error"
    return message, details


async def _application_error(request: Request, exc: ApplicationError) -> JSONResponse:
    log_extra = {"code": exc.code, "status_code": exc.status_code}
    server_side = exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
    if server_side:
        logger.error("Request failed: %s", exc.message, exc_info=exc, extra=log_extra)
    else:
        logger.warning("Request rejected: %s", exc.message, extra=log_extra)
    return _error_response(
        request,
        status_code=exc.status_code,
        message=exc.message,
        details=exc.details,
        headers=exc.headers,
        exc=exc if server_side else None,
    )


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message, details = _validation_details(exc.errors())
    logger.warning(message, extra={"errors": [detail.model_dump() for detail in details]})
    return _error_response(
        request,
        status_code=status.HTTP_400_BAD_REQUEST,
        message=message,
        details=details,
    )


async def _integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Write violated a database constraint", exc_info=exc)
    return _error_response(
        request,
        status_code=status.HTTP_400_BAD_REQUEST,
        message="Database integrity violation",
    )


async def _database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database operation failed", exc_info=exc)
    return _internal_error(request, exc)


async def _http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    log = logger.error if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
    log("HTTP %s on %s", exc.status_code, request.url.path, extra={"status_code": exc.status_code})
    return _error_response(
        request,
        status_code=exc.status_code,
        message=exc.detail if isinstance(exc.detail, str) else "Request failed",
        headers=exc.headers or None,
    )


async def _unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _internal_error(request, exc)


# Starlette picks the handler registered for the closest class in the MRO, so
# IntegrityError wins over SQLAlchemyError regardless of order.
_HANDLERS: tuple[tuple[type[BaseException], Handler], ...] = (
    (ApplicationError, _application_error),
    (RequestValidationError, _request_validation_error),
    (IntegrityError, _integrity_error),
    (SQLAlchemyError, _database_error),
    (StarletteHTTPException, _http_exception),
    (Exception, _unhandled_exception),
)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as the ``{"success": false, "error": ...}`` envelope."""

    for exc_class, handler in _HANDLERS:
        app.add_exception_handler(exc_class, _in_request_context(handler))


__all__ = [
    "ApplicationError",
    "AuthenticationError",
    "ConflictError",
    "InvalidReferenceError",
    "NotFoundError",
    "UpstreamError",
    "ValidationError",
    "register_exception_handlers",
]
