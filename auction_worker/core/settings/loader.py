"""LRU-cached settings loaders.

Each loader validates its model once per process; tests call
``clear_all_caches()`` after changing the environment, or build a model
directly (``ConsumerSettings(worker_pool_size=2)``).
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .consumer import ConsumerSettings
from .logs import LoggingSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> PostgresSettings:
    return PostgresSettings()


@lru_cache(maxsize=1)
def get_rabbit_settings() -> RabbitSettings:
    return RabbitSettings()


@lru_cache(maxsize=1)
def get_consumer_settings() -> ConsumerSettings:
    return ConsumerSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings()


_LOADERS = (
    get_app_settings,
    get_db_settings,
    get_rabbit_settings,
    get_consumer_settings,
    get_logging_settings,
)


def clear_all_caches() -> None:
    """Forget every cached settings instance; the next call reloads."""
    for loader in _LOADERS:
        loader.cache_clear()
