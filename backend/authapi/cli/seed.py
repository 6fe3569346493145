"""``flask seed``: development accounts."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext

from authapi.core.extensions import db
from authapi.seeds import seed_data

LOGGER = logging.getLogger(__name__)


def _run_seeders(verbose: bool) -> None:
    try:
        summary = seed_data.run_all(verbose=verbose)
    except Exception as exc:  # pragma: no cover - CLI safeguard
        raise click.ClickException(f"Seeding failed: {exc}") from exc

    click.echo("Seed summary:")
    if not summary:
        click.echo("  (no changes)")
        return
    width = max(map(len, summary))
    for table in sorted(summary):
        counts = summary[table]
        click.echo(
            f"  {table.ljust(width)}  created={counts.get('created', 0):>2}"
            f"  existing={counts.get('existing', 0):>2}"
        )


@click.group("seed")
@click.option("--verbose", is_flag=True, help="Log each seeded account.")
@click.pass_context
def seed_cli(ctx: click.Context, verbose: bool) -> None:
    """Seed development accounts."""
    ctx.obj = {"verbose": verbose}
    level = logging.DEBUG if verbose else logging.INFO
    for name in (LOGGER.name, seed_data.__name__):
        logging.getLogger(name).setLevel(level)


@seed_cli.command("run")
@click.pass_obj
@with_appcontext
def run_command(obj: dict) -> None:
    """Create the verified development accounts that do not exist yet."""
    _run_seeders(bool(obj.get("verbose")))


@seed_cli.command("fresh")
@click.option("--yes", is_flag=True, help="Do not ask before dropping tables.")
@click.pass_obj
@with_appcontext
def fresh_command(obj: dict, yes: bool) -> None:
    """Drop every table (accounts, identities, codes), recreate and seed."""
    config = current_app.config
    if not (config.get("DEBUG") or config.get("TESTING")):
        raise click.UsageError("'flask seed fresh' only runs in development or testing.")
    if not yes:
        click.confirm("Drop all accounts, linked identities and pending codes?", abort=True)

    LOGGER.info("Recreating database schema", extra={"event": "seed.fresh"})
    db.session.remove()
    db.drop_all()
    db.create_all()
    _run_seeders(bool(obj.get("verbose")))
