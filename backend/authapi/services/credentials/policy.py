"""Input rules checked before any credential is persisted."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from marshmallow import ValidationError as MarshmallowValidationError
from marshmallow import validate

_email_validator = validate.Email(error="Not a valid email address.")


def email_errors(email: Any) -> list[str]:
    """Return format problems for ``email`` (empty list when valid)."""
    if not isinstance(email, str) or not email.strip():
        return ["Email is required."]
    if len(email.strip()) > 254:
        return ["Email must be at most 254 characters."]
    try:
        _email_validator(email.strip())
    except MarshmallowValidationError as exc:
        return list(exc.messages) if isinstance(exc.messages, list) else [str(exc.messages)]
    return []


@dataclass(frozen=True, slots=True)
class PasswordPolicy:
    """
    Password strength rules.

    :param min_length: Minimum number of characters.
    :param require_lower: Require at least one lowercase letter.
    :param require_upper: Require at least one uppercase letter.
    :param require_digit: Require at least one digit.
    :param max_length: Upper bound that keeps hashing cost predictable.
    """

    min_length: int = 8
    require_lower: bool = True
    require_upper: bool = True
    require_digit: bool = True
    max_length: int = 128

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> PasswordPolicy:
        return cls(
            min_length=int(config.get("PASSWORD_MIN_LENGTH", 8)),
            require_lower=bool(config.get("PASSWORD_REQUIRE_LOWER", True)),
            require_upper=bool(config.get("PASSWORD_REQUIRE_UPPER", True)),
            require_digit=bool(config.get("PASSWORD_REQUIRE_DIGIT", True)),
        )

    def violations(self, password: Any) -> list[str]:
        if not isinstance(password, str) or not password:
            return ["Password is required."]
        problems: list[str] = []
        if len(password) < self.min_length:
            problems.append(f"Password must be at least {self.min_length} characters long.")
        if len(password) > self.max_length:
            problems.append(f"Password must be at most {self.max_length} characters long.")
        if self.require_lower and not any(c.islower() for c in password):
            problems.append("Password must contain a lowercase letter.")
        if self.require_upper and not any(c.isupper() for c in password):
            problems.append("Password must contain an uppercase letter.")
        if self.require_digit and not any(c.isdigit() for c in password):
            problems.append("Password must contain a digit.")
        return problems
