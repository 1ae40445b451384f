"""Process identity: which service, which release, which environment."""

from __future__ import annotations

from typing import ClassVar, Literal

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from .yaml_sources import LayeredSettings

Environment = Literal["development", "staging", "production", "test"]


class AppSettings(LayeredSettings):
    """``APP_`` settings, e.g. APP_ENVIRONMENT=production.

    Stamped onto the worker's startup log line and bound logger.
    """

    config_domain: ClassVar[str] = "app"

    service_name: str = Field(default="item-service", pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$")
    version: str = Field(default="1.0.0", pattern=r"^\d+\.\d+\.\d+(-[A-Za-z0-9.]+)?$")
    environment: Environment = "development"

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
