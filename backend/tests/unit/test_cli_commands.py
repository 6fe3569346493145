"""Tests for the ``flask seed`` and ``flask tokens`` command groups."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from sqlalchemy import func, select

from authapi.models import SingleUseToken, User
from tests.factories.single_use_token import SingleUseTokenFactory


def test_seed_run_is_idempotent(app, session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["seed", "run"])
    second = runner.invoke(args=["seed", "run"])

    assert first.exit_code == 0, first.output
    assert "created= 1" in first.output
    assert "existing= 1" in second.output
    seeded = session.scalar(select(User).where(User.email == "alex.holder@example.com"))
    assert seeded.email_verified is True
    assert seeded.verify_password("SomePassword1")


def test_tokens_purge_removes_only_expired(app, session):
    SingleUseTokenFactory(expires_at=datetime.now(UTC) - timedelta(minutes=1))
    SingleUseTokenFactory(expires_at=datetime.now(UTC) - timedelta(days=2))
    SingleUseTokenFactory()
    session.commit()

    result = app.test_cli_runner().invoke(args=["tokens", "purge"])

    assert result.exit_code == 0, result.output
    assert "Purged 2 expired token(s)." in result.output
    assert session.scalar(select(func.count()).select_from(SingleUseToken)) == 1
