"""Errors raised by repositories instead of raw SQLAlchemy exceptions."""

from __future__ import annotations

from typing import Any


def _format_pairs(values: dict[str, Any]) -> str:
    return ", ".join(f"{key}={value!r}" for key, value in values.items())


class RepositoryError(Exception):
    """A repository operation failed.

    ``details`` carries structured context and is appended to ``str()``.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message} ({_format_pairs(self.details)})"


class NotFoundError(RepositoryError):
    """No row matched ``identifier`` for ``model_name``."""

    def __init__(self, model_name: str, identifier: dict[str, Any]) -> None:
        self.model_name = model_name
        self.identifier = identifier
        super().__init__(
            f"{model_name} not found with {_format_pairs(identifier)}",
            details={"model": model_name, **identifier},
        )

    def __repr__(self) -> str:
        return f"NotFoundError(model={self.model_name!r}, identifier={self.identifier!r})"


class OptimisticLockError(RepositoryError):
    """A versioned update lost to a concurrent writer.

    The stored row is left as the other writer committed it; callers re-read
    and retry. ``expected_version`` is the version this writer had loaded.
    """

    def __init__(
        self,
        model_name: str,
        identifier: dict[str, Any],
        expected_version: int | None = None,
    ) -> None:
        self.model_name = model_name
        self.identifier = identifier
        self.expected_version = expected_version
        details: dict[str, Any] = {"model": model_name, **identifier}
        if expected_version is not None:
            details["expected_version"] = expected_version
        super().__init__(f"Optimistic lock failed for {model_name}", details=details)


__all__ = ["NotFoundError", "OptimisticLockError", "RepositoryError"]
