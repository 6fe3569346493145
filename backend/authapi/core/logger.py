"""JSON logging with request correlation and credential redaction.

Every record leaving the process is a single JSON line. Records emitted
inside a request carry the request id (taken from ``X-Request-ID`` /
``X-Correlation-ID`` or generated), and the id is echoed back on the
response. Session tokens and single-use codes never reach the log stream:
JWT-shaped strings and credential query parameters are masked before the
message is rendered.
"""

from __future__ import annotations

import json
import logging
import re
import sys
import time
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from flask import Flask, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")
REQUEST_ID_ENVIRON_KEY = "authapi.request_id"
REQUEST_STARTED_ENVIRON_KEY = "authapi.request_started"

# Attributes passed through ``extra={...}`` that are copied into the payload
EXTRA_KEYS = (
    "event",
    "user_id",
    "provider",
    "token_type",
    "method",
    "path",
    "status",
    "elapsed_ms",
)

MASK = "***"
_JWT_RE = re.compile(r"\beyJ[\w-]+\.[\w-]+\.[\w-]+")
_CREDENTIAL_PARAM_RE = re.compile(r"(?i)\b(token|state|code|password)=([^&\s]+)")

access_log = logging.getLogger("authapi.access")


def redact(text: str) -> str:
    """Mask JWTs and credential-bearing query parameters in ``text``."""
    text = _JWT_RE.sub(MASK, text)
    return _CREDENTIAL_PARAM_RE.sub(lambda m: f"{m.group(1)}={MASK}", text)


class JSONFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": redact(record.getMessage()),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = redact(self.formatException(record.exc_info))
        for key in EXTRA_KEYS:
            if hasattr(record, key):
                value = getattr(record, key)
                payload[key] = redact(value) if isinstance(value, str) else value
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on every record (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def ensure_request_id() -> str:
    """Return the current request identifier, generating one when necessary."""
    if not has_request_context():
        return str(uuid4())
    # Stored on the WSGI environ: ``g`` outlives the request when an app
    # context was already pushed.
    current = request.environ.get(REQUEST_ID_ENVIRON_KEY)
    if current:
        return current
    incoming = next(
        (request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)), None
    )
    request.environ[REQUEST_ID_ENVIRON_KEY] = incoming or str(uuid4())
    return request.environ[REQUEST_ID_ENVIRON_KEY]


def _resolve_level(level: str | int) -> int | str:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else level.upper()


def configure_logging(level: str | int = "INFO") -> None:
    """Route the root logger to stdout as JSON lines."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))


def init_app(app: Flask) -> None:
    """Register request-id hooks and the access log on ``app``."""
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _start_request() -> None:
        ensure_request_id()
        request.environ[REQUEST_STARTED_ENVIRON_KEY] = time.perf_counter()

    @app.after_request
    def _finish_request(response):
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        started = request.environ.get(REQUEST_STARTED_ENVIRON_KEY)
        if app.config.get("ACCESS_LOG", True) and started is not None:
            access_log.info(
                "request handled",
                extra={
                    "event": "http.request",
                    "method": request.method,
                    "path": request.full_path.rstrip("?"),
                    "status": response.status_code,
                    "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )
        return response


__all__ = ["configure_logging", "init_app", "ensure_request_id", "redact"]
