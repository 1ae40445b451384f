"""Database primitives: declarative base, repository, exceptions."""

from __future__ import annotations

from .base import NAMING_CONVENTION, Base, TimestampMixin
from .exceptions import NotFoundError, OptimisticLockError, RepositoryError
from .repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "NotFoundError",
    "OptimisticLockError",
    "RepositoryError",
    "TimestampMixin",
]
