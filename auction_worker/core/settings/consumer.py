"""Bid consumer settings: topology names and worker tuning."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from .yaml_sources import LayeredSettings


class ConsumerSettings(LayeredSettings):
    """Queue topology and concurrency settings for the bid consumer.

    Environment variables use CONSUMER_ prefix.
    Example: CONSUMER_WORKER_POOL_SIZE=40, CONSUMER_ROUTING_KEYS='["bid.*.v1"]'
    """

    config_domain: ClassVar[str] = "consumer"

    # ─────────────────────────────────────────────────────
    # Topology
    # ─────────────────────────────────────────────────────
    service_name: str = Field(
        default="item-service",
        min_length=1,
        max_length=100,
        description="Service name attached to consumer tags and log records.",
    )
    exchange_name: str = Field(
        default="auction.bid",
        min_length=1,
        max_length=200,
        pattern=r"^[a-zA-Z0-9_.-]+$",
        description="Topic exchange the bid events are published to.",
    )
    queue_name: str = Field(
        default="auction.bid.all.v1",
        min_length=1,
        max_length=200,
        pattern=r"^[a-zA-Z0-9_.-]+$",
        description="Durable work queue consumed by this worker.",
    )
    routing_keys: list[str] = Field(
        default_factory=lambda: ["bid.*.v1"],
        min_length=1,
        description="Binding patterns between the exchange and the work queue.",
    )

    # ─────────────────────────────────────────────────────
    # Concurrency
    # ─────────────────────────────────────────────────────
    prefetch_count: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Channel-wide QoS prefetch (unacknowledged deliveries in flight).",
    )
    worker_pool_size: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Maximum number of deliveries processed concurrently.",
    )
    processing_timeout: float = Field(
        default=30.0,
        gt=0,
        le=3600.0,
        description="Per-delivery handler deadline in seconds.",
    )

    # ─────────────────────────────────────────────────────
    # Bid handling
    # ─────────────────────────────────────────────────────
    bid_max_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Read-modify-write attempts for bid.placed on version conflicts.",
    )
    bid_conflict_backoff: float = Field(
        default=0.01,
        ge=0,
        le=10.0,
        description="Base sleep in seconds between conflict retries (multiplied by attempt).",
    )

    # ─────────────────────────────────────────────────────
    # Observability
    # ─────────────────────────────────────────────────────
    pool_monitor_interval: float = Field(
        default=30.0,
        gt=0,
        le=3600.0,
        description="Seconds between database pool statistics samples.",
    )
    metrics_port: int | None = Field(
        default=None,
        ge=1,
        le=65535,
        description="Expose Prometheus metrics on this port when set.",
    )

    model_config = SettingsConfigDict(
        env_prefix="CONSUMER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("routing_keys")
    @classmethod
    def _reject_blank_keys(cls, value: list[str]) -> list[str]:
        """Strip whitespace and refuse blank binding patterns."""
        keys = [key.strip() for key in value]
        if any(not key for key in keys):
            msg = "routing_keys must not contain blank entries"
            raise ValueError(msg)
        return keys
