"""Prometheus metrics on a worker-owned registry."""

from __future__ import annotations

from prometheus_client import start_http_server

from auction_worker.infra.metrics import business, tracking
from auction_worker.infra.metrics.prometheus import REGISTRY


def start_metrics_server(port: int, addr: str = "0.0.0.0") -> None:
    """Expose REGISTRY over HTTP on a background thread."""
    start_http_server(port, addr=addr, registry=REGISTRY)


__all__ = [
    "REGISTRY",
    "business",
    "start_metrics_server",
    "tracking",
]
