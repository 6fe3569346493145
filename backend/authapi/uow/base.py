"""
Unit of Work contract.

A unit of work is the transactional boundary of one use case. The account
row, its linked identities and any single-use codes touched by the use
case are written through the repositories it exposes and become visible
together, or not at all.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authapi.repositories import SingleUseTokenRepository, UserRepository


class UnitOfWork(ABC):
    users: UserRepository
    single_use_tokens: SingleUseTokenRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...

    @abstractmethod
    def commit(self) -> None:
        """Make every change made through the repositories durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard changes made since the last commit."""
