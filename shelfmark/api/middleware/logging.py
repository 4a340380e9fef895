"""
Access logging for the API.

Every request gets a correlation ID, taken from the client's
``X-Request-ID`` header or generated, which is echoed on the response and
exposed to the error handlers through ``get_request_id``. Requests outside
the skipped paths produce one line on the ``shelfmark.api`` logger with
method, path, status and duration, including requests whose handler
raised. Credentials are redacted from the logged headers and bodies.
"""

import json
import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Set

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REDACTED = "[REDACTED]"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger("shelfmark.api")


@dataclass
class LoggingConfig:
    """Access log settings."""

    enabled: bool = True

    # Request bodies are only logged in development
    log_request_body: bool = False
    max_body_log_size: int = 10000

    skip_paths: Set[str] = field(default_factory=lambda: {"/api/health", "/favicon.ico"})
    redacted_headers: Set[str] = field(default_factory=lambda: {"authorization", "cookie", "set-cookie"})
    redacted_fields: Set[str] = field(default_factory=lambda: {"password", "token", "secret", "access_token"})

    slow_request_seconds: float = 2.0

    request_id_header: str = "X-Request-ID"


def get_request_id() -> str:
    """Correlation ID of the request being served, or ``""``."""
    return request_id_var.get()


def redact_sensitive_data(data: Any, redacted_fields: Set[str]) -> Any:
    """Copy of ``data`` with the values of ``redacted_fields`` keys masked."""
    if isinstance(data, dict):
        return {
            key: REDACTED if key.lower() in redacted_fields else redact_sensitive_data(value, redacted_fields)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_sensitive_data(item, redacted_fields) for item in data]
    return data


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per record, with the access fields when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if request_id_var.get():
            entry["request_id"] = request_id_var.get()
        entry.update(getattr(record, "access", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def access_level(status_code: int, duration: float, slow_after: float) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400 or duration > slow_after:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and writes its access-log line."""

    def __init__(self, app: FastAPI, config: Optional[LoggingConfig] = None):
        super().__init__(app)
        self.config = config or LoggingConfig()

    async def _request_details(self, request: Request) -> dict:
        details = {
            "method": request.method,
            "path": request.url.path,
            "query": request.url.query or None,
            "client_ip": request.client.host if request.client else None,
            "headers": {
                name: REDACTED if name.lower() in self.config.redacted_headers else value
                for name, value in request.headers.items()
            },
        }
        if self.config.log_request_body:
            body = await request.body()
            if len(body) > self.config.max_body_log_size:
                details["body"] = f"[BODY TOO LARGE: {len(body)} bytes]"
            elif body:
                try:
                    details["body"] = redact_sensitive_data(json.loads(body), self.config.redacted_fields)
                except ValueError:
                    details["body"] = body.decode("utf-8", errors="replace")
        return details

    def _log_access(self, details: dict, status_code: int, started: float, failed: bool = False) -> None:
        duration = time.perf_counter() - started
        duration_ms = round(duration * 1000, 2)

        message = f"{details['method']} {details['path']} -> {status_code} ({duration_ms}ms)"
        if duration > self.config.slow_request_seconds:
            message = f"[SLOW] {message}"

        logger.log(
            access_level(status_code, duration, self.config.slow_request_seconds),
            message,
            exc_info=failed,
            extra={"access": {"request": details, "status_code": status_code, "duration_ms": duration_ms}},
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        header = self.config.request_id_header
        request_id = request.headers.get(header) or uuid.uuid4().hex[:8]
        request_id_var.set(request_id)

        if not self.config.enabled or request.url.path in self.config.skip_paths:
            response = await call_next(request)
            response.headers[header] = request_id
            return response

        details = await self._request_details(request)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # The outermost handler turns this into a 500
            self._log_access(details, 500, started, failed=True)
            raise

        response.headers[header] = request_id
        self._log_access(details, response.status_code, started)
        return response


def setup_logging(
    app: FastAPI,
    config: Optional[LoggingConfig] = None,
    structured: bool = True,
) -> None:
    """
    Install the access-log middleware.

    Args:
        app: FastAPI application instance.
        config: Access log settings.
        structured: Emit JSON lines on the ``shelfmark`` logger.
    """
    if structured:
        package_logger = logging.getLogger("shelfmark")
        if not any(isinstance(h.formatter, StructuredLogFormatter) for h in package_logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredLogFormatter())
            package_logger.addHandler(handler)
        package_logger.setLevel(logging.INFO)

    app.add_middleware(RequestLoggingMiddleware, config=config or LoggingConfig())
