"""Modular Pydantic Settings v2 configuration.

Import settings via cached loaders:
    from auction_worker.core.settings import get_consumer_settings

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. YAML/conf.d files (optional, local/dev)
    3. Environment variables (production)
    4. .env file (development only)
    5. secrets_dir (Kubernetes/Docker secrets)
"""

from __future__ import annotations

from .app import AppSettings
from .consumer import ConsumerSettings
from .loader import (
    clear_all_caches,
    get_app_settings,
    get_consumer_settings,
    get_db_settings,
    get_logging_settings,
    get_rabbit_settings,
)
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings

__all__ = [
    "AppSettings",
    "ConsumerSettings",
    "LoggingSettings",
    "PostgresSettings",
    "RabbitSettings",
    "clear_all_caches",
    "get_app_settings",
    "get_consumer_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_rabbit_settings",
]
