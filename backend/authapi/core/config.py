"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Placeholder secrets refused by ProductionConfig.validate()
_PLACEHOLDER_PREFIX: Final[str] = "CHANGE_ME"

load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, falling back to ``default``."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Not used for session tokens.
    SHORT_TOKEN_SECRET, LONG_TOKEN_SECRET: str
        Independent HMAC secrets for the short-lived and long-lived session
        token classes. They must differ.
    SHORT_TOKEN_TTL_SECONDS, LONG_TOKEN_TTL_SECONDS: int
        Session token lifetimes (1 hour and 30 days by default).
    EMAIL_VERIFICATION_TTL_SECONDS, TV_CODE_TTL_SECONDS: int
        Lifetimes of single-use codes per type.
    TOKEN_STORE_BACKEND: str
        ``"sql"`` (default), ``"redis"`` or ``"memory"``.
    MAIL_BACKEND: str
        ``"postmark"`` or ``"memory"`` (records messages in-process).
    EMAIL_VERIFIED_REDIRECT_URL: str
        Where a successful email verification link redirects the browser.
    PASSWORD_MIN_LENGTH, PASSWORD_REQUIRE_*: int / bool
        Password strength policy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    ACCESS_LOG: bool
        Emit one ``http.request`` record per handled request.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secretos / seguridad
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    SHORT_TOKEN_SECRET = os.getenv("SHORT_TOKEN_SECRET", "CHANGE_ME_SHORT_TOKEN_SECRET_0000")
    LONG_TOKEN_SECRET = os.getenv("LONG_TOKEN_SECRET", "CHANGE_ME_LONG_TOKEN_SECRET_00000")
    SHORT_TOKEN_TTL_SECONDS = env_int("SHORT_TOKEN_TTL_SECONDS", 60 * 60)
    LONG_TOKEN_TTL_SECONDS = env_int("LONG_TOKEN_TTL_SECONDS", 60 * 60 * 24 * 30)

    # Single-use codes
    EMAIL_VERIFICATION_TTL_SECONDS = env_int("EMAIL_VERIFICATION_TTL_SECONDS", 60 * 60 * 24)
    TV_CODE_TTL_SECONDS = env_int("TV_CODE_TTL_SECONDS", 10 * 60)
    TOKEN_STORE_BACKEND = os.getenv("TOKEN_STORE_BACKEND", "sql")
    REDIS_URL = os.getenv("REDIS_URL", "")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Mail
    MAIL_BACKEND = os.getenv("MAIL_BACKEND", "postmark")
    MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@example.com")
    MAIL_TIMEOUT_SECONDS = env_int("MAIL_TIMEOUT_SECONDS", 10)
    POSTMARK_SERVER_TOKEN = os.getenv("POSTMARK_SERVER_TOKEN", "")
    POSTMARK_TEMPLATE_ALIAS = os.getenv("POSTMARK_TEMPLATE_ALIAS", "signup-confirmation")
    EMAIL_VERIFIED_REDIRECT_URL = os.getenv(
        "EMAIL_VERIFIED_REDIRECT_URL", "http://localhost:5173/email-verified"
    )

    # Password policy
    PASSWORD_MIN_LENGTH = env_int("PASSWORD_MIN_LENGTH", 8)
    PASSWORD_REQUIRE_LOWER = env_bool("PASSWORD_REQUIRE_LOWER", True)
    PASSWORD_REQUIRE_UPPER = env_bool("PASSWORD_REQUIRE_UPPER", True)
    PASSWORD_REQUIRE_DIGIT = env_bool("PASSWORD_REQUIRE_DIGIT", True)

    # OAuth providers
    DISCORD_CLIENT_ID = os.getenv("DISCORD_CLIENT_ID", "")
    DISCORD_CLIENT_SECRET = os.getenv("DISCORD_CLIENT_SECRET", "")
    DISCORD_REDIRECT_URI = os.getenv(
        "DISCORD_REDIRECT_URI", "http://localhost:8000/api/v1/oauth/discord/callback"
    )
    TWITCH_CLIENT_ID = os.getenv("TWITCH_CLIENT_ID", "")
    TWITCH_CLIENT_SECRET = os.getenv("TWITCH_CLIENT_SECRET", "")
    TWITCH_REDIRECT_URI = os.getenv(
        "TWITCH_REDIRECT_URI", "http://localhost:8000/api/v1/oauth/twitch/callback"
    )
    OAUTH_HTTP_TIMEOUT_SECONDS = env_int("OAUTH_HTTP_TIMEOUT_SECONDS", 10)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    ACCESS_LOG = env_bool("ACCESS_LOG", True)

    DEBUG = False
    TESTING = False

    @classmethod
    def validate(cls) -> None:
        """Hook for environment-specific sanity checks (no-op by default)."""


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode and records outgoing emails in memory unless
    ``MAIL_BACKEND`` is set explicitly.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    MAIL_BACKEND = os.getenv("MAIL_BACKEND", "memory")


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Never talks to Postmark or Redis.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    TOKEN_STORE_BACKEND = "sql"
    MAIL_BACKEND = "memory"
    SHORT_TOKEN_SECRET = "testing-short-token-secret-0123456789abcdef"
    LONG_TOKEN_SECRET = "testing-long-token-secret-0123456789abcdef"


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled and refuses to start with the
    placeholder secrets shipped in :class:`BaseConfig`.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False

    @classmethod
    def validate(cls) -> None:
        for key in ("SECRET_KEY", "SHORT_TOKEN_SECRET", "LONG_TOKEN_SECRET"):
            if str(getattr(cls, key)).startswith(_PLACEHOLDER_PREFIX):
                raise RuntimeError(f"{key} must be configured in production.")
        if cls.SHORT_TOKEN_SECRET == cls.LONG_TOKEN_SECRET:
            raise RuntimeError("SHORT_TOKEN_SECRET and LONG_TOKEN_SECRET must differ.")
        if cls.MAIL_BACKEND == "postmark" and not cls.POSTMARK_SERVER_TOKEN:
            raise RuntimeError("POSTMARK_SERVER_TOKEN must be configured in production.")


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
