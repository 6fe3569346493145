"""RFC 7807 problem+json rendering for every error the API can raise."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, has_request_context, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from authapi.core.logger import ensure_request_id
from authapi.services._shared.errors import (
    AuthenticationError,
    AuthMismatchError,
    ConflictError,
    DeliveryError,
    DuplicateEmailError,
    InvalidTokenError,
    NotFoundError,
    OAuthExchangeError,
    OAuthLinkConflictError,
    ServiceError,
    TokenIssueError,
    TokenNotFoundError,
    ValidationError,
)

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

# Service error class -> (HTTP status, stable code). First match wins, so
# subclasses are listed before their bases.
SERVICE_ERROR_STATUS: tuple[tuple[type[ServiceError], int, str], ...] = (
    (ValidationError, HTTPStatus.UNPROCESSABLE_ENTITY, "validation_error"),
    (DuplicateEmailError, HTTPStatus.CONFLICT, "duplicate_email"),
    (AuthenticationError, HTTPStatus.UNAUTHORIZED, "authentication_failed"),
    (AuthMismatchError, HTTPStatus.FORBIDDEN, "forbidden"),
    (InvalidTokenError, HTTPStatus.UNAUTHORIZED, "invalid_token"),
    (TokenNotFoundError, HTTPStatus.NOT_FOUND, "not_found"),
    (OAuthLinkConflictError, HTTPStatus.CONFLICT, "oauth_link_conflict"),
    (ConflictError, HTTPStatus.CONFLICT, "conflict"),
    (NotFoundError, HTTPStatus.NOT_FOUND, "not_found"),
    (DeliveryError, HTTPStatus.BAD_GATEWAY, "delivery_failed"),
    (OAuthExchangeError, HTTPStatus.BAD_GATEWAY, "oauth_exchange_failed"),
    (TokenIssueError, HTTPStatus.SERVICE_UNAVAILABLE, "service_unavailable"),
)

# Codes for errors raised by werkzeug routing and request parsing.
HTTP_STATUS_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
    422: "unprocessable_entity",
    500: "internal_server_error",
    502: "bad_gateway",
    503: "service_unavailable",
}


class APIError(Exception):
    """
    An error that renders as one problem document.

    :param message: Client-safe ``detail``.
    :param status_code: HTTP status, ``400`` by default.
    :param code: Stable snake_case identifier clients can branch on.
    :param details: Optional structured payload (field errors).
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return problem_document(
            self.status_code, self.code, self.message, self.details or None
        )


class Unauthorized(APIError):
    """401 when the request carries no session token at all."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized")


def problem_document(
    status: int, code: str, detail: str, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Build the RFC 7807 body, stamped with the request id."""
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": int(status),
        "detail": detail,
        "instance": request.path if has_request_context() else None,
        "code": code,
    }
    if details:
        problem["details"] = details
    problem["request_id"] = ensure_request_id()
    return problem


def _respond(problem: dict[str, Any]) -> tuple[Response, int]:
    resp = jsonify(problem)
    resp.mimetype = PROBLEM_MIMETYPE
    return resp, problem["status"]


def _log_problem(problem: dict[str, Any], source: str, *, exc: BaseException | None = None) -> None:
    status = problem["status"]
    extra = {"event": "http.error", "status": status}
    if status >= 500:
        log.error("%s %s: %s", source, problem["code"], problem["detail"], extra=extra, exc_info=exc)
    else:
        log.warning("%s %s: %s", source, problem["code"], problem["detail"], extra=extra)


def from_service_error(err: ServiceError) -> APIError:
    """
    Translate a framework-free :class:`ServiceError` into an :class:`APIError`.

    5xx errors carry only the status phrase; the upstream message (Postmark,
    OAuth provider) stays in the log. Unknown subclasses become ``400``.
    """
    for cls, status, code in SERVICE_ERROR_STATUS:
        if not isinstance(err, cls):
            continue
        if status >= 500:
            return APIError(HTTPStatus(status).phrase, status, code)
        details = {"errors": err.errors} if isinstance(err, ValidationError) and err.errors else None
        return APIError(str(err), status, code, details)
    return APIError(str(err), HTTPStatus.BAD_REQUEST, "bad_request")


def init_app(app: Flask) -> None:
    """Register problem+json handlers on ``app``."""

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        problem = err.to_problem()
        _log_problem(problem, "api")
        return _respond(problem)

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        problem = from_service_error(err).to_problem()
        _log_problem(problem, type(err).__name__, exc=err)
        return _respond(problem)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        code = HTTP_STATUS_CODES.get(status, "error")
        if status == HTTPStatus.NOT_FOUND:
            detail = f"Route '{request.path}' not found"
        else:
            detail = (err.description or code.replace("_", " ").capitalize()).strip()
        problem = problem_document(status, code, detail)
        _log_problem(problem, "http")
        return _respond(problem)

    @app.errorhandler(MarshmallowValidationError)
    def handle_schema_error(err: MarshmallowValidationError):
        problem = problem_document(
            HTTPStatus.UNPROCESSABLE_ENTITY,
            "validation_error",
            "Validation failed",
            {"errors": err.messages},
        )
        _log_problem(problem, "schema")
        return _respond(problem)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        problem = problem_document(HTTPStatus.CONFLICT, "conflict", "Resource conflict")
        log.error("integrity error", extra={"event": "http.error", "status": 409}, exc_info=err)
        return _respond(problem)

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        problem = problem_document(
            HTTPStatus.SERVICE_UNAVAILABLE,
            "service_unavailable",
            "Service temporarily unavailable",
        )
        _log_problem(problem, "database", exc=err)
        return _respond(problem)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        problem = problem_document(
            HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error", "Unexpected error"
        )
        _log_problem(problem, "unhandled", exc=err)
        return _respond(problem)
