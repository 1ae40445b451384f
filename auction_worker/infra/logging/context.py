"""Per-delivery log context carried by an explicit adapter.

Handlers receive a bound logger rather than reading ambient state, so the
identifiers on a record are exactly those of the delivery being processed,
even with many deliveries in flight on one event loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping


class ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter whose bound fields are merged with the call's ``extra``.

    ``logging.LoggerAdapter`` discards the caller's ``extra``; here both are
    kept and keys given at the call site take precedence.
    """

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs

    def bind(self, **fields: Any) -> ContextAdapter:
        """New adapter with ``fields`` added; this one is left unchanged."""
        return ContextAdapter(self.logger, {**(self.extra or {}), **fields})


def bind_logger(
    base: logging.Logger | logging.LoggerAdapter | str,
    context: Mapping[str, Any] | None = None,
    **fields: Any,
) -> ContextAdapter:
    """Wrap ``base`` so every record carries ``context`` and ``fields``.

    ``base`` may be a logger name, a logger, or another adapter whose bound
    fields are inherited.

        log = bind_logger(__name__, trace_id="abc", correlation_id="def")
        log.info("Delivery received")
    """
    inherited: Mapping[str, Any] = {}
    if isinstance(base, str):
        base = logging.getLogger(base)
    elif isinstance(base, logging.LoggerAdapter):
        inherited = base.extra or {}
        base = base.logger
    return ContextAdapter(base, {**inherited, **(context or {}), **fields})


__all__ = ["ContextAdapter", "bind_logger"]
