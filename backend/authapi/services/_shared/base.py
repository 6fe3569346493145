# authapi/services/_shared/base.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from authapi.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data.

    :param actor_id: Authenticated user identifier, when known.
    :param request_id: Correlation id for logging/tracing.
    """

    actor_id: int | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Offer the shared clock so tests can freeze time in one place.
    * Keep services thin, orchestration-only, no web leakage.

    Notes
    -----
    Services never commit the global session directly; they always use a
    Unit of Work.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        self.ctx = ctx or ServiceContext()

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """Create a read-write Unit of Work (commit on success, rollback on error)."""
        return SQLAlchemyUnitOfWork()

    def ro_uow(self, *, enforce_db_readonly: bool = True) -> SQLAlchemyReadOnlyUnitOfWork:
        """Create a read-only Unit of Work."""
        return SQLAlchemyReadOnlyUnitOfWork(enforce_db_readonly=enforce_db_readonly)

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)
