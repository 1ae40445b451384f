"""Auction domain exceptions."""

from __future__ import annotations

from typing import Any


class PayloadError(Exception):
    """Event payload is missing required fields or has invalid values.

    Never retried: the same payload would fail the same way on every attempt.
    """

    def __init__(self, event: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.event = event
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.event}: {self.message} ({details_str})"
        return f"{self.event}: {self.message}"


__all__ = ["PayloadError"]
