"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, jsonify, request

from authapi.core.errors import Unauthorized
from authapi.core.registry import get_registry
from authapi.services.auth.service import AuthService
from authapi.services.auth.strategies import Strategy

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "bearer "
TOKEN_QUERY_PARAM = "jwt"


def bearer_token() -> tuple[str, Strategy]:
    """Return the presented session token and the strategy that reads it.

    The ``Authorization: Bearer`` header wins over the ``jwt`` query
    parameter; both end up in the same verification function.

    :raises Unauthorized: When neither carries a token.
    """

    header = request.headers.get("Authorization", "")
    if header.lower().startswith(BEARER_PREFIX):
        token = header[len(BEARER_PREFIX) :].strip()
        if token:
            return token, Strategy.SESSION_HEADER
    token = (request.args.get(TOKEN_QUERY_PARAM) or "").strip()
    if token:
        return token, Strategy.SESSION_PARAM
    raise Unauthorized("Missing session token")


def get_auth_service() -> AuthService:
    """Build the auth orchestrator from the application's service registry."""

    return get_registry().auth_service()


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
