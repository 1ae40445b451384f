"""PostgreSQL connection and pool settings for the worker.

Either give a complete ``DATABASE_URL`` or the individual ``DB_*`` parts;
a URL wins over parts. The engine always uses the async psycopg driver.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field, SecretStr, computed_field, model_validator
from pydantic_settings import SettingsConfigDict
from sqlalchemy.engine import URL, make_url

from .yaml_sources import LayeredSettings

DRIVERNAME = "postgresql+psycopg"


class PostgresSettings(LayeredSettings):
    """Database settings (``DB_`` prefix).

    Every delivery handler holds at most one connection at a time, so
    ``pool_size + max_overflow`` should cover ``CONSUMER_WORKER_POOL_SIZE``;
    the defaults (15 + 5) match the default pool of 20 handlers.
    """

    config_domain: ClassVar[str] = "db"

    dsn: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="Complete SQLAlchemy URL; its parts override DB_HOST, DB_USER, ...",
    )

    host: str = Field(default="localhost", min_length=1, max_length=255)
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = Field(default="postgres", min_length=1, max_length=100)
    password: SecretStr = Field(default=SecretStr("postgres"))
    name: str = Field(default="items", min_length=1, max_length=100, description="Database name.")
    application_name: str = Field(
        default="item-service-worker",
        min_length=1,
        max_length=63,
        description="Shown in pg_stat_activity for the worker's sessions.",
    )

    pool_size: int = Field(default=15, ge=1, le=100, description="Persistent pooled connections.")
    max_overflow: int = Field(
        default=5, ge=0, le=100, description="Extra connections opened under burst load."
    )
    pool_timeout: float = Field(
        default=30.0,
        ge=0.1,
        le=300.0,
        description="Seconds a handler waits for a free connection before failing.",
    )
    pool_recycle: int = Field(default=300, ge=0, le=86400)
    pool_pre_ping: bool = True
    connect_timeout: int = Field(default=5, ge=1, le=60)
    echo: bool = Field(default=False, description="Log every SQL statement.")

    startup_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Connectivity checks before startup gives up.",
    )
    startup_retry_delay: float = Field(
        default=2.0,
        ge=0.1,
        le=60.0,
        description="First delay between startup checks in seconds; doubles afterwards.",
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @model_validator(mode="after")
    def _apply_dsn(self) -> PostgresSettings:
        """Copy the parts of ``DATABASE_URL`` onto the component fields."""
        if not self.dsn:
            return self

        parsed = make_url(self.dsn)
        parts: dict[str, Any] = {
            "host": parsed.host,
            "port": parsed.port,
            "user": parsed.username,
            "password": SecretStr(parsed.password) if parsed.password else None,
            "name": parsed.database,
        }
        for field, value in parts.items():
            if value:
                object.__setattr__(self, field, value)
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        """Async SQLAlchemy URL with the password rendered (quoted)."""
        return URL.create(
            DRIVERNAME,
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.name,
            query={"application_name": self.application_name},
        ).render_as_string(hide_password=False)

    @property
    def max_connections(self) -> int:
        """Upper bound of simultaneously checked-out connections."""
        return self.pool_size + self.max_overflow

    def sqlalchemy_engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine(settings.url, **kwargs)``."""
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": self.pool_pre_ping,
            "connect_args": {"connect_timeout": self.connect_timeout},
            "echo": self.echo,
        }
