"""
Request logging for the job board API.

Each request is logged as a pair of JSON events, ``request_started`` and
``request_completed``, tied together by a request ID. Credentials, resume
links and cover letters never reach the log, and emails, phone numbers
and IPs inside free text are replaced with placeholders.
"""

import json
import logging
import re
import time
import traceback
import uuid
from contextvars import ContextVar
from typing import Any, Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# Request ID of the request being served, picked up by every log record
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

REQUEST_ID_HEADER = "x-request-id"
REDACTED = "[REDACTED]"

SENSITIVE_FIELD = re.compile(
    r"password|token|secret|authorization|cookie|api[_-]?key|resume[_-]?link|cover[_-]?letter",
    re.IGNORECASE,
)

PII_PATTERNS = [
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    (re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"), "[PHONE]"),
    (re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b"), "[IP]"),
]

# Polled by load balancers
UNLOGGED_PATHS = ("/health", "/ready")


def is_sensitive_field(field_name: str) -> bool:
    return SENSITIVE_FIELD.search(field_name) is not None


def mask_text(value: str) -> str:
    for pattern, placeholder in PII_PATTERNS:
        value = pattern.sub(placeholder, value)
    return value


def mask_sensitive_data(data: Any, depth: int = 0, max_depth: int = 10) -> Any:
    """
    Mask a decoded JSON value for logging.

    Values under sensitive keys are replaced outright, strings anywhere
    else go through :func:`mask_text`. Nesting deeper than ``max_depth``
    is cut off.
    """
    if depth > max_depth:
        return "[MAX_DEPTH_EXCEEDED]"

    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if is_sensitive_field(str(key)):
                masked[key] = REDACTED
            else:
                masked[key] = mask_sensitive_data(value, depth + 1, max_depth)
        return masked

    if isinstance(data, list):
        return [mask_sensitive_data(item, depth + 1, max_depth) for item in data]

    if isinstance(data, str):
        return mask_text(data)

    return data


def mask_headers(headers: dict) -> dict:
    """Redact credential headers. ``Authorization`` keeps its scheme visible."""
    masked = {}
    for name, value in headers.items():
        if not is_sensitive_field(name):
            masked[name] = value
            continue

        scheme, _, credential = value.partition(" ")
        if name.lower() == "authorization" and credential:
            masked[name] = f"{scheme} {REDACTED}"
        else:
            masked[name] = REDACTED
    return masked


def should_log_request(path: str) -> bool:
    return not path.startswith(UNLOGGED_PATHS)


def get_client_ip(request: Request) -> str:
    """First forwarded address (or the peer), with the last IPv4 octet hidden."""
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip() if forwarded else None
    if not ip:
        ip = request.client.host if request.client else ""

    octets = ip.split(".")
    if len(octets) != 4:
        return "unknown"
    return ".".join(octets[:3] + ["xxx"])


def emit(event: dict, status_code: int = 200) -> None:
    message = json.dumps(event, default=str)
    if status_code >= 500:
        logger.error(message)
    elif status_code >= 400:
        logger.warning(message)
    else:
        logger.info(message)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request as structured JSON events.

    The request ID comes from the caller's ``x-request-id`` header or is
    generated, is visible to all loggers through :data:`request_id_ctx`
    and is echoed on the response. The completion event carries the
    authenticated user ID, the status code and the duration.

    Args:
        app: The ASGI application
        log_request_body: Include masked JSON bodies of write requests
        max_body_size: Bodies larger than this many bytes are only sized
    """

    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = False,
        max_body_size: int = 1024,
    ):
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        context_token = request_id_ctx.set(request_id)

        try:
            if should_log_request(request.url.path):
                response = await self._dispatch_logged(request, call_next, request_id)
            else:
                response = await call_next(request)
        finally:
            request_id_ctx.reset(context_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    async def _dispatch_logged(
        self, request: Request, call_next: Callable, request_id: str
    ) -> Response:
        base = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }

        started = {
            "event": "request_started",
            **base,
            "query_params": mask_sensitive_data(dict(request.query_params)),
            "client_ip": get_client_ip(request),
            "user_agent": request.headers.get("user-agent", "unknown"),
            "headers": mask_headers(dict(request.headers)),
        }
        if self.log_request_body and request.method in ("POST", "PUT", "PATCH"):
            body = await self._read_json_body(request)
            if body is not None:
                started["body"] = mask_sensitive_data(body)
        emit(started)

        start = time.perf_counter()
        completed = {"event": "request_completed", **base}
        try:
            response = await call_next(request)
        except Exception as exc:
            completed.update(
                user_id=getattr(request.state, "user_id", None),
                status_code=500,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                error={"type": type(exc).__name__},
            )
            emit(completed, 500)
            raise

        completed.update(
            user_id=getattr(request.state, "user_id", None),
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        emit(completed, response.status_code)
        return response

    async def _read_json_body(self, request: Request) -> Any:
        if "application/json" not in request.headers.get("content-type", ""):
            return None

        raw = await request.body()
        if len(raw) > self.max_body_size:
            return {"_truncated": True, "_size": len(raw)}
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.debug(f"Request body is not valid JSON: {e}")
            return None


class RequestContextFilter(logging.Filter):
    """Stamp records with the ID of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_ctx.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for attr in ("request_id", "user_id"):
            value = getattr(record, attr, None)
            if value is not None:
                payload[attr] = value

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(payload, default=str)


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Install a single console handler on the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        json_logs: Use :class:`StructuredFormatter`; otherwise plain text
            lines that still show the request ID
    """
    level = getattr(logging, log_level.upper())

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    if json_logs:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"
        ))

    root = logging.getLogger()
    root.setLevel(level)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
