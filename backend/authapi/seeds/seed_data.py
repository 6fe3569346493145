"""Idempotent database seed helpers for local development environments."""

from __future__ import annotations

import logging

from authapi.models.user import User
from authapi.uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)

USER_FIXTURES: list[dict[str, str | bool]] = [
    {
        "email": "alex.holder@example.com",
        "password": "SomePassword1",
        "email_verified": True,
    },
]


def _touch(summary: dict[str, dict[str, int]], table: str, created: bool) -> None:
    """Update summary counters for the given table."""
    entry = summary.setdefault(table, {"created": 0, "existing": 0})
    if created:
        entry["created"] += 1
    else:
        entry["existing"] += 1


def seed_users(*, verbose: bool = False) -> dict[str, dict[str, int]]:
    """Create the development accounts (already verified) if missing.

    Existing accounts are left untouched, passwords included.
    """
    if verbose:
        LOGGER.info("Seeding users...")
    summary: dict[str, dict[str, int]] = {}

    with SQLAlchemyUnitOfWork() as uow:
        for fixture in USER_FIXTURES:
            email = str(fixture["email"]).strip().lower()
            user = uow.users.get_by_email(email)
            created = user is None
            if user is None:
                user = User(
                    email=email,
                    password=str(fixture["password"]),
                    email_verified=bool(fixture.get("email_verified", False)),
                )
                uow.users.add(user)
            _touch(summary, "users", created)

    return summary


def run_all(*, verbose: bool = False) -> dict[str, dict[str, int]]:
    """Run all seeders in foreign-key order."""
    if verbose:
        LOGGER.info("Running full seed pipeline...")
    return seed_users(verbose=verbose)


__all__ = ["seed_users", "run_all"]
