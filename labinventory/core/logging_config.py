"""
Structured JSON logging for the lab-inventory service.

One JSON object per line. Every record carries the service identity and,
while a request is in flight, the request id, correlation id and the
authenticated user id. Services attach their own fields through
``extra={'extra_fields': {...}}``.
"""

import json
import logging
import logging.handlers
import re
import sys
import time
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Dict, Optional
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

CONTEXT_KEYS = ("request_id", "correlation_id", "user_id")

_request_context: ContextVar[Dict[str, str]] = ContextVar("request_context", default={})

def set_request_context(
    request_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    user_id: Optional[str] = None
) -> None:
    """Add non-empty values to the current request's log context."""
    context = dict(_request_context.get())
    for key, value in zip(CONTEXT_KEYS, (request_id, correlation_id, user_id)):
        if value:
            context[key] = value
    _request_context.set(context)

def get_request_context() -> Dict[str, str]:
    return dict(_request_context.get())

def reset_request_context() -> None:
    _request_context.set({})

def generate_request_id() -> str:
    return str(uuid.uuid4())

class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def __init__(self, service_name: str, environment: str, version: str):
        super().__init__()
        self.service = {"name": service_name, "environment": environment, "version": version}

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "@timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service,
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        context = get_request_context()
        if context:
            entry["request"] = context
        fields = getattr(record, "extra_fields", None)
        if fields:
            entry["fields"] = fields
        if getattr(record, "duration_ms", None) is not None:
            entry["duration_ms"] = round(record.duration_ms, 2)
        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc, tb = record.exc_info
            entry["error"] = {
                "type": exc_type.__name__,
                "message": str(exc),
                "stacktrace": traceback.format_exception(exc_type, exc, tb),
            }
        return json.dumps(entry, default=str)

class PerformanceFilter(logging.Filter):
    """Lift ``duration_ms`` out of ``extra_fields`` so it is indexed at top level."""

    def filter(self, record: logging.LogRecord) -> bool:
        fields = getattr(record, "extra_fields", None)
        if isinstance(fields, dict) and "duration_ms" in fields:
            record.duration_ms = fields.pop("duration_ms")
        return True

class SecurityFilter(logging.Filter):
    """Redact bearer tokens and secrets from messages and structured fields."""

    SECRET_KEYS = {"password", "token", "access_token", "authorization", "secret", "jwt_secret"}
    PATTERNS = [
        re.compile(r"(bearer\s+)[A-Za-z0-9\-_\.]+", re.IGNORECASE),
        re.compile(r"((?:password|token|secret)\s*[=:]\s*)\S+", re.IGNORECASE),
    ]
    MASK = "***REDACTED***"

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern in self.PATTERNS:
            redacted = pattern.sub(r"\1" + self.MASK, redacted)
        if redacted != message:
            record.msg = redacted
            record.args = None

        fields = getattr(record, "extra_fields", None)
        if isinstance(fields, dict):
            record.extra_fields = {
                k: (self.MASK if k.lower() in self.SECRET_KEYS else v) for k, v in fields.items()
            }
        return True

def _build_handler(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setFormatter(formatter)
    handler.addFilter(PerformanceFilter())
    handler.addFilter(SecurityFilter())
    return handler

def setup_logging(
    service_name: str,
    level: str = "INFO",
    environment: str = "development",
    version: str = "1.0.0",
    enable_console: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Replace the root logger's handlers with JSON handlers.

    Args:
        service_name: Reported in every record
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        environment: Deployment label, e.g. development or production
        version: Service version label
        enable_console: Write to stdout
        log_file: Also write to this file, rotated at 10MB
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers = []

    formatter = StructuredFormatter(service_name, environment, version)
    if enable_console:
        root.addHandler(_build_handler(logging.StreamHandler(sys.stdout), formatter))
    if log_file:
        rotating = logging.handlers.RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
        root.addHandler(_build_handler(rotating, formatter))

    # Request lines come from RequestLoggingMiddleware instead
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "alembic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root.info("Logging initialized", extra={'extra_fields': {'level': level, 'log_file': log_file}})

class LoggerAdapter(logging.LoggerAdapter):
    """Adapter whose static fields are merged under each call's ``extra_fields``."""

    def process(self, msg, kwargs):
        extra = kwargs.setdefault("extra", {})
        if self.extra:
            extra["extra_fields"] = {**self.extra, **extra.get("extra_fields", {})}
        return msg, kwargs

def get_logger(name: str, **static_fields) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name), static_fields)

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Start a fresh log context per request and log its outcome.

    ``X-Request-ID`` is taken from the caller when present and echoed back.
    Server errors are logged at ERROR, everything else at INFO.
    """

    logger = get_logger("labinventory.requests")

    async def dispatch(self, request: Request, call_next) -> Response:
        reset_request_context()
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_context(request_id=request_id, correlation_id=request.headers.get("X-Correlation-ID"))

        route = f"{request.method} {request.url.path}"
        fields = {"method": request.method, "path": request.url.path}
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = (time.perf_counter() - started) * 1000
            self.logger.error(f"Request failed: {route}", exc_info=True, extra={'extra_fields': fields})
            raise

        fields["status_code"] = response.status_code
        fields["duration_ms"] = (time.perf_counter() - started) * 1000
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        self.logger.log(level, f"{route} -> {response.status_code}", extra={'extra_fields': fields})
        response.headers["X-Request-ID"] = request_id
        return response
