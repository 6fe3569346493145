"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from authapi.repositories.base import BaseRepository
from authapi.repositories.single_use_token import SingleUseTokenRepository
from authapi.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "SingleUseTokenRepository",
    "UserRepository",
]
