"""
Error rendering for the job board API.

Every failure leaves the service in the same envelope::

    {"error": {"code", "message", "path", "method", "details"?, "request_id"?}}

Messages are scrubbed of credential-looking fragments before they are
rendered or logged.
"""

import logging
import re
import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from core.exceptions import JobBoardError

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

SENSITIVE_PATTERNS = [
    re.compile(r'(?:password|token|secret|api[_-]?key)["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'\b\d{3}-\d{2}-\d{4}\b'),
    re.compile(r'\b\d{16}\b'),
]

# Checked in order, so subclasses come before SQLAlchemyError
INFRASTRUCTURE_ERRORS: list[tuple[type[BaseException], int, str, str]] = [
    (IntegrityError, status.HTTP_409_CONFLICT, "CONFLICT",
     "Database integrity constraint violated"),
    (OperationalError, status.HTTP_503_SERVICE_UNAVAILABLE, "SERVICE_UNAVAILABLE",
     "Database service temporarily unavailable"),
    (SQLAlchemyError, status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR",
     "A database error occurred"),
    (TimeoutError, status.HTTP_504_GATEWAY_TIMEOUT, "TIMEOUT",
     "The request timed out"),
]

HTTP_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: "AUTHENTICATION_REQUIRED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}

REQUEST_SECTIONS = ("body", "query", "path")


def sanitize_error_message(message: str) -> str:
    """Replace credential-looking fragments of ``message`` with a marker."""
    for pattern in SENSITIVE_PATTERNS:
        message = pattern.sub(REDACTED, message)
    return message


def get_safe_error_details(exc: BaseException, include_details: bool = False) -> dict[str, Any]:
    """
    Describe an exception for the ``details`` field of a debug response.

    Args:
        exc: The exception being rendered
        include_details: Attach the formatted traceback as well

    Returns:
        ``{"type", "message"}`` plus ``traceback`` when requested
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(str(exc)),
    }
    if include_details:
        details["traceback"] = traceback.format_exc()
    return details


def http_error_code_and_message(exc: StarletteHTTPException) -> tuple[str, str]:
    """
    Read code and message from an HTTPException.

    ``detail`` may be a plain string or a ``{"code", "message"}`` dict.
    """
    if isinstance(exc.detail, dict):
        code = str(exc.detail.get("code", "HTTP_EXCEPTION"))
        message = str(exc.detail.get("message", ""))
    else:
        code = HTTP_STATUS_CODES.get(exc.status_code, "HTTP_EXCEPTION")
        message = str(exc.detail)
    return code, sanitize_error_message(message)


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """
    List every violated field of a request.

    The request section is dropped from the location, so a body field
    ``title`` is reported as ``title`` rather than ``body.title``. Inputs
    are echoed back only when they are scalars with nothing to redact.
    """
    formatted = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part not in REQUEST_SECTIONS)
        message = error["msg"].removeprefix("Value error, ")
        entry = {
            "field": field or "body",
            "message": sanitize_error_message(message),
            "type": error["type"],
        }

        value = error.get("input")
        if isinstance(value, (str, int, float, bool)):
            if sanitize_error_message(str(value)) == str(value):
                entry["input"] = value

        formatted.append(entry)
    return formatted


def describe_exception(
    exc: BaseException, debug: bool = False
) -> tuple[int, str, str, Any]:
    """Map an exception to ``(status_code, code, message, details)``."""
    if isinstance(exc, JobBoardError):
        return exc.status_code, exc.code, sanitize_error_message(exc.message), exc.details

    if isinstance(exc, StarletteHTTPException):
        code, message = http_error_code_and_message(exc)
        return exc.status_code, code, message, None

    if isinstance(exc, RequestValidationError):
        return (
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "Request validation failed",
            format_validation_errors(exc),
        )

    for exc_type, status_code, code, message in INFRASTRUCTURE_ERRORS:
        if isinstance(exc, exc_type):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        code = "INTERNAL_SERVER_ERROR"
        message = "An unexpected error occurred"

    details = get_safe_error_details(exc, include_details=True) if debug else None
    return status_code, code, message, details


def build_error_body(
    code: str,
    message: str,
    path: str,
    method: str,
    details: Any = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build the error envelope. Empty ``details`` and ``request_id`` are left out."""
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "path": path,
        "method": method,
    }
    if details is not None:
        error["details"] = details
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def log_failure(exc: BaseException, status_code: int, code: str, method: str, path: str) -> None:
    if status_code >= 500:
        logger.error(
            f"{code}: {method} {path} - "
            f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
            exc_info=exc,
        )
    else:
        logger.warning(f"{code}: {method} {path} - Status: {status_code}")


class ErrorHandlingMiddleware:
    """
    Outermost ASGI layer.

    Anything that escapes the routers and the registered exception
    handlers, database and timeout errors included, is rendered here
    instead of reaching the client as a bare 500. With ``debug`` on,
    unexpected errors carry their type, message and traceback.
    """

    def __init__(self, app: ASGIApp, debug: bool = False):
        self.app = app
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = self.render(exc, scope)
            await response(scope, receive, send)

    def render(self, exc: Exception, scope: Scope) -> JSONResponse:
        path = scope.get("path", "unknown")
        method = scope.get("method", "unknown")
        status_code, code, message, details = describe_exception(exc, self.debug)
        log_failure(exc, status_code, code, method, path)

        request_id = dict(scope.get("headers") or []).get(b"x-request-id")
        body = build_error_body(
            code,
            message,
            path,
            method,
            details,
            request_id.decode() if request_id else None,
        )
        return JSONResponse(status_code=status_code, content=body)


def setup_error_handlers(app: FastAPI) -> None:
    """
    Register envelope-producing handlers for domain errors, HTTP errors
    and request validation errors.

    HTTP errors keep their headers, so a missing token still answers
    with ``WWW-Authenticate: Bearer``.
    """

    async def render_exception(request: Request, exc: Exception) -> JSONResponse:
        status_code, code, message, details = describe_exception(exc)
        if status_code >= 500:
            log_failure(exc, status_code, code, request.method, request.url.path)
        return JSONResponse(
            status_code=status_code,
            content=build_error_body(code, message, request.url.path, request.method, details),
            headers=getattr(exc, "headers", None),
        )

    for exc_type in (JobBoardError, StarletteHTTPException, RequestValidationError):
        app.add_exception_handler(exc_type, render_exception)
