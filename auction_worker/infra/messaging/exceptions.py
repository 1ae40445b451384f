"""Messaging exceptions.

Startup failures (topology, connection) are fatal to the worker; delivery
level failures end in a reject without requeue.
"""

from __future__ import annotations

from typing import Any


class MessagingError(Exception):
    """Base exception for broker interaction failures."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class TopologyError(MessagingError):
    """Exchange, queue or binding declaration failed.

    Usually a conflicting pre-existing declaration (PRECONDITION_FAILED)
    or missing permissions. Never retried.
    """


class DeliveryStreamClosedError(MessagingError):
    """The consumer's delivery stream ended or its channel closed.

    The worker exits so that a supervisor can restart it with a fresh
    connection.
    """


class EventDecodeError(MessagingError):
    """A message body is not a valid event envelope."""


__all__ = [
    "DeliveryStreamClosedError",
    "EventDecodeError",
    "MessagingError",
    "TopologyError",
]
