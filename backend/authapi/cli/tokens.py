"""Maintenance commands for single-use tokens."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from authapi.core.extensions import db
from authapi.core.registry import get_registry


@click.group("tokens")
def tokens_cli() -> None:
    """Single-use token maintenance."""


@tokens_cli.command("purge")
@with_appcontext
def purge_command() -> None:
    """Delete expired email-verification and TV-login codes."""
    service = get_registry().token_service()
    try:
        removed = service.purge_expired()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    click.echo(f"Purged {removed} expired token(s).")
