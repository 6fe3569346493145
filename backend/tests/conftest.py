"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database so data changes never leak between cases. External
collaborators (email, OAuth providers) are in-process doubles.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy.orm import scoped_session, sessionmaker

from authapi.core.config import TestingConfig
from authapi.core.extensions import db as _db  # Flask-SQLAlchemy instance
from authapi.factory import create_app  # application factory under test
from authapi.services._shared.ports import (
    InMemorySingleUseTokenStore,
    RecordingEmailSender,
    StubOAuthProviderClient,
    StubSessionCodec,
)
from authapi.services.credentials.service import CredentialService
from authapi.services.tokens.service import SingleUseTokenService


# Authorization codes the stub providers accept, mapped to provider profile ids.
DISCORD_PROFILES = {"discord-code-1": "d-100", "discord-code-2": "d-200"}
TWITCH_PROFILES = {"twitch-code-1": "t-100"}


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing.

    Yields
    ------
    flask.Flask
        Application built from :class:`TestingConfig` (SQL token store,
        recording mailer) with stub OAuth providers registered.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestingConfig)
    app.logger.setLevel("WARNING")
    registry = app.extensions["authapi"]
    registry.oauth_clients.update(
        {
            "discord": StubOAuthProviderClient("discord", DISCORD_PROFILES),
            "twitch": StubOAuthProviderClient("twitch", TWITCH_PROFILES),
        }
    )
    yield app
    registry.close()


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    Yields
    ------
    flask_sqlalchemy.SQLAlchemy
        Database extension bound to the testing application.
    """
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Notes
    -----
    Mirrors the SQLAlchemy 2.0 pattern for joining an external transaction:
    a top-level transaction plus a SAVEPOINT, and the session opens its own
    SAVEPOINT inside it for every transaction it begins. ``db.session`` is
    swapped so application code uses this session.

    Units of work commit and roll back the session's own SAVEPOINT, so a
    service error rolls back everything flushed since the last commit. Tests
    that exercise error paths call ``session.commit()`` after arranging data.
    """
    top_trans = connection.begin()

    SessionFactory = sessionmaker(
        bind=connection, autoflush=False, join_transaction_mode="create_savepoint"
    )
    scoped = scoped_session(SessionFactory)

    # Outermost SAVEPOINT: SQLite treats releasing the outermost one as COMMIT.
    connection.begin_nested()

    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        top_trans.rollback()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


@pytest.fixture()
def client(app, session):
    """Flask test client sharing the transactional session."""
    return app.test_client()


@pytest.fixture()
def registry(app):
    """The application's service registry."""
    return app.extensions["authapi"]


@pytest.fixture()
def mailer(registry):
    """Recording mailer used by the app, emptied for each test."""
    sender: RecordingEmailSender = registry.email_sender
    sender.sent.clear()
    sender.fail_with = None
    yield sender
    sender.fail_with = None


# -- Service doubles ----------------------------------------------------------


@pytest.fixture()
def stub_codec() -> StubSessionCodec:
    return StubSessionCodec()


@pytest.fixture()
def memory_store() -> InMemorySingleUseTokenStore:
    return InMemorySingleUseTokenStore()


@pytest.fixture()
def recording_mailer() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture()
def token_service(session) -> SingleUseTokenService:
    """Token service on the SQL store (joins the test session)."""
    from authapi.infra.sql.single_use_token_store import SQLSingleUseTokenStore

    return SingleUseTokenService(SQLSingleUseTokenStore())


@pytest.fixture()
def credential_service(stub_codec, token_service, recording_mailer) -> CredentialService:
    return CredentialService(codec=stub_codec, tokens=token_service, mailer=recording_mailer)


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(request):
    """Wire Factory Boy's session helper to the transactional session fixture.

    Tests that never touch the database (pure unit tests) skip the wiring.
    """
    from tests.factories import SQLAlchemySession

    if "session" in request.fixturenames or "client" in request.fixturenames:
        SQLAlchemySession.set(request.getfixturevalue("session"))
    else:
        SQLAlchemySession.set(None)
    yield
