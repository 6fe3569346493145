"""Flask extension singletons shared by the whole application."""

from __future__ import annotations

import logging

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

log = logging.getLogger(__name__)

# Deterministic constraint names; unique-violation handling matches on them.
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)

db: SQLAlchemy = SQLAlchemy(metadata=metadata, session_options={"autoflush": False})
migrate = Migrate(render_as_batch=True)
redis_client: redis.Redis | None = None


def _connect_redis(url: str) -> redis.Redis:
    client = redis.Redis.from_url(url)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {url!r}") from exc
    return client


def init_app(app: Flask) -> None:
    """Bind the database, migrations and, for the redis token store, Redis.

    Importing :mod:`authapi.models` here registers every table on
    :data:`metadata` before Alembic inspects it. Redis is connected only
    when ``TOKEN_STORE_BACKEND`` is ``"redis"``; other backends never open
    a connection, so a missing ``REDIS_URL`` is not an error for them.
    """
    global redis_client

    db.init_app(app)
    from authapi import models as _models  # noqa: F401

    migrate.init_app(app, db)

    if app.config.get("TOKEN_STORE_BACKEND") != "redis":
        redis_client = None
        app.extensions.pop("redis_client", None)
        return

    url = app.config.get("REDIS_URL")
    if not url:
        raise RuntimeError("TOKEN_STORE_BACKEND=redis requires REDIS_URL.")
    redis_client = _connect_redis(url)
    app.extensions["redis_client"] = redis_client
    log.info("redis connected", extra={"event": "app.redis"})


def get_redis() -> redis.Redis:
    """Return the connected Redis client."""
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized. Call init_app() first.")
    return redis_client
