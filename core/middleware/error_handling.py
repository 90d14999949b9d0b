"""
Error responses for the API.

Every failure leaves the service as ``{"error": {"code", "message", "path",
"method"}}``. Messages are scrubbed of credentials before they are returned
or logged, and store failures are reported without their cause.
"""

import logging
import re
import traceback
from typing import Any, Callable, NamedTuple, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.access.exceptions import (
    AuthorizationError,
    BackingStoreError,
    InvalidArgument,
    JobAccessError,
    NotFoundError,
    SelfRevocationError,
)

logger = logging.getLogger(__name__)

# Credentials that must never reach a client or a log line
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'api[_-]?key["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
]


class ErrorClass(NamedTuple):
    status_code: int
    code: str
    message: str


def sanitize_error_message(message: Any) -> str:
    """Replace credential-looking values in a message with ``[REDACTED]``."""
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def get_safe_error_details(exc: Exception, include_details: bool = False) -> dict[str, Any]:
    """
    Describe an exception for debug output.

    Args:
        exc: The exception to describe
        include_details: Add the current traceback (development only)
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(exc),
    }
    if include_details:
        details["traceback"] = traceback.format_exc()
    return details


def classify_access_error(exc: JobAccessError) -> ErrorClass:
    """Map a job access error to its HTTP status, error code and message."""
    if isinstance(exc, InvalidArgument):
        return ErrorClass(status.HTTP_400_BAD_REQUEST, "INVALID_INPUT", sanitize_error_message(exc))
    if isinstance(exc, SelfRevocationError):
        return ErrorClass(status.HTTP_400_BAD_REQUEST, "SELF_REVOCATION", sanitize_error_message(exc))
    if isinstance(exc, NotFoundError):
        return ErrorClass(status.HTTP_404_NOT_FOUND, "NOT_FOUND", sanitize_error_message(exc))
    if isinstance(exc, AuthorizationError):
        return ErrorClass(status.HTTP_403_FORBIDDEN, "PERMISSION_DENIED", sanitize_error_message(exc))
    if isinstance(exc, BackingStoreError):
        return ErrorClass(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "DATABASE_ERROR",
            "Database service temporarily unavailable",
        )
    return ErrorClass(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", "An unexpected error occurred"
    )


def classify_exception(exc: Exception) -> ErrorClass:
    """Map any exception escaping a route to an error response."""
    if isinstance(exc, JobAccessError):
        return classify_access_error(exc)
    if isinstance(exc, StarletteHTTPException):
        return ErrorClass(exc.status_code, "HTTP_EXCEPTION", sanitize_error_message(exc.detail))
    if isinstance(exc, IntegrityError):
        return ErrorClass(
            status.HTTP_409_CONFLICT, "INTEGRITY_ERROR", "Database integrity constraint violated"
        )
    if isinstance(exc, OperationalError):
        return ErrorClass(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "DATABASE_ERROR",
            "Database service temporarily unavailable",
        )
    if isinstance(exc, SQLAlchemyError):
        return ErrorClass(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR", "A database error occurred"
        )
    if isinstance(exc, TimeoutError):
        return ErrorClass(status.HTTP_504_GATEWAY_TIMEOUT, "TIMEOUT", "The request timed out")
    return ErrorClass(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", "An unexpected error occurred"
    )


def _error_body(
    code: str,
    message: str,
    path: str,
    method: str,
    details: Any = None,
    request_id: Optional[str] = None,
) -> dict:
    error = {"code": code, "message": message, "path": path, "method": method}
    if details is not None:
        error["details"] = details
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


class ErrorHandlingMiddleware:
    """
    Last-resort ASGI error handler.

    Route-level handlers from ``setup_error_handlers`` answer the expected
    errors; this catches whatever they let through (database errors, bugs)
    and answers with a sanitized JSON error instead of a bare 500.
    """

    def __init__(self, app: Callable, debug: bool = False):
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = self._error_response(exc, scope)
            await response(scope, receive, send)

    def _error_response(self, exc: Exception, scope: dict) -> JSONResponse:
        path = scope.get("path", "unknown")
        method = scope.get("method", "unknown")
        error = classify_exception(exc)

        if error.status_code >= 500:
            logger.error(
                f"{method} {path} failed with {type(exc).__name__}: {sanitize_error_message(exc)}",
                exc_info=not isinstance(exc, (JobAccessError, TimeoutError)),
            )
        else:
            logger.warning(f"{method} {path} failed with {error.status_code}: {error.message}")

        details = None
        if self.debug and (error.status_code >= 500 or isinstance(exc, IntegrityError)):
            details = get_safe_error_details(exc, include_details=True)

        request_id = dict(scope.get("headers") or []).get(b"x-request-id")
        return JSONResponse(
            status_code=error.status_code,
            content=_error_body(
                error.code,
                error.message,
                path,
                method,
                details,
                request_id.decode() if request_id else None,
            ),
        )


def setup_error_handlers(app):
    """
    Register route-level exception handlers on a FastAPI application.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """HTTP errors keep their status and headers."""
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                "HTTP_EXCEPTION",
                sanitize_error_message(exc.detail),
                request.url.path,
                request.method,
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report each invalid field."""
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": sanitize_error_message(error["msg"]),
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(
                "VALIDATION_ERROR",
                "Request validation failed",
                request.url.path,
                request.method,
                errors,
            ),
        )

    @app.exception_handler(JobAccessError)
    async def access_exception_handler(request: Request, exc: JobAccessError):
        error = classify_access_error(exc)
        if error.status_code >= 500:
            logger.error(
                f"{request.method} {request.url.path} failed with {type(exc).__name__}",
                exc_info=exc,
            )
        return JSONResponse(
            status_code=error.status_code,
            content=_error_body(error.code, error.message, request.url.path, request.method),
        )
