"""Factory Boy base bound to the per-test transactional session."""

from __future__ import annotations

import factory


class SQLAlchemySession:
    """Holder for the session the ``session`` fixture opens for each test."""

    _session = None

    @classmethod
    def set(cls, session):
        cls._session = session

    @classmethod
    def get(cls):
        if cls._session is None:
            raise RuntimeError(
                "No factory session: request the 'session' (or 'client') fixture "
                "before building accounts or codes."
            )
        return cls._session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Persists with ``flush`` so rows stay inside the test's savepoint."""

    class Meta:
        abstract = True
        sqlalchemy_session_factory = SQLAlchemySession.get
        sqlalchemy_session_persistence = "flush"
