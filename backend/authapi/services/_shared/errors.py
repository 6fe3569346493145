"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic**: they never import Flask or HTTP
helpers. The translation to RFC 7807 responses lives in
``authapi/core/errors.py`` (see ``SERVICE_ERROR_STATUS``).

Messages carried by authentication-related errors are deliberately generic;
the precise cause is only ever logged.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str, *columns: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL and MySQL include the constraint name in the driver message;
    SQLite only reports ``table.column``, so callers may pass the qualified
    column names as a fallback.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g. ``uq_users_email``).
    columns : str
        Optional ``table.column`` markers used by dialects without names.

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    return bool(columns) and all(col.lower() in message for col in columns)


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The HTTP layer maps each subclass to a status code and a stable code.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


class ValidationError(ServiceError):
    """
    Raised when input is malformed or too weak (user-correctable).

    :param message: Summary safe to show to clients.
    :param errors: Field name to list of messages.
    """

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class DuplicateEmailError(ServiceError):
    """Raised when signing up (or changing email) to an address already in use."""

    def __init__(self, message: str = "An account with this email already exists.") -> None:
        super().__init__(message)


class AuthenticationError(ServiceError):
    """Wrong email or password. Never says which one."""

    def __init__(self, message: str = "Invalid email or password.") -> None:
        super().__init__(message)


class AuthMismatchError(ServiceError):
    """The session token subject does not own the targeted resource."""

    def __init__(self, message: str = "You can only modify your own account.") -> None:
        super().__init__(message)


class InvalidTokenError(ServiceError):
    """
    A session token failed verification (signature, expiry, class or format).

    Callers always receive the same message regardless of the cause.
    """

    def __init__(
        self, message: str = "Session token could not be verified. Please log in again."
    ) -> None:
        super().__init__(message)


class TokenNotFoundError(ServiceError):
    """A single-use code is unknown, already used, of the wrong type, or expired."""

    def __init__(self, message: str = "This code is invalid or has already been used.") -> None:
        super().__init__(message)


class TokenIssueError(ServiceError):
    """No free single-use code could be generated within the retry budget."""


class OAuthLinkConflictError(ServiceError):
    """Linking would overwrite an existing identity or steal another user's profile."""

    def __init__(self, provider: str, message: str | None = None) -> None:
        super().__init__(message or f"A different {provider} account is already linked.")
        self.provider = provider


class DeliveryError(ServiceError):
    """The email collaborator failed to accept a message."""


class OAuthExchangeError(ServiceError):
    """The OAuth provider rejected the code exchange or profile lookup."""


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a concurrent write or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str = field(default="conflicting update")

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"
