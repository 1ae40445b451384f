"""Logging settings (``LOG_`` prefix)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar, Literal

from pydantic import Field, computed_field, field_validator
from pydantic_settings import SettingsConfigDict

from .yaml_sources import LayeredSettings

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(LayeredSettings):
    """How the worker writes its logs.

    Example: LOG_LEVEL=debug LOG_JSON_LOGS=false for readable local output.
    """

    config_domain: ClassVar[str] = "logging"

    service_name: str = Field(
        default="item-service", description="Static ``service`` field on every JSON record."
    )
    level: LogLevel = "INFO"
    json_logs: bool = Field(default=True, description="JSON Lines instead of plain text.")
    console_enabled: bool = True
    capture_warnings: bool = Field(
        default=True, description="Route ``warnings.warn`` output through logging."
    )

    file_enabled: bool = False
    file_path: Path = Path("logs/item-service-worker.log.jsonl")
    file_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, le=1024**3)
    file_backup_count: int = Field(default=5, ge=0, le=100)

    noisy_loggers: dict[str, LogLevel] = Field(
        default_factory=lambda: {
            "aio_pika": "WARNING",
            "aiormq": "WARNING",
            "sqlalchemy.engine": "WARNING",
        },
        description="Level overrides for chatty library loggers.",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_file_path(self) -> Path | None:
        """``file_path`` when file logging is on, else None."""
        return self.file_path if self.file_enabled else None

    @property
    def level_int(self) -> int:
        return logging.getLevelNamesMapping()[self.level]
