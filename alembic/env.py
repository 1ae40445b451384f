"""Migration environment for the auction worker's schema.

Targets the database described by ``PostgresSettings`` (``DB_*`` or
``DATABASE_URL``) unless alembic.ini sets ``sqlalchemy.url``. Callers that
already hold an async engine pass it as ``config.attributes["engine"]``.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig
from typing import TYPE_CHECKING, Any

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import AsyncEngine, async_engine_from_config

from alembic import context
from auction_worker.core.database.base import Base
from auction_worker.core.settings import get_db_settings
from auction_worker.features.auctions import models  # noqa: F401  registers tables

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

if not config.get_main_option("sqlalchemy.url"):
    # "%" must be doubled for ConfigParser interpolation
    config.set_main_option("sqlalchemy.url", get_db_settings().url.replace("%", "%%"))

COMPARE_OPTIONS: dict[str, Any] = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def _migrate(connection: Connection) -> None:
    context.configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_with(engine: AsyncEngine) -> None:
    async with engine.connect() as connection:
        await connection.run_sync(_migrate)
        await connection.commit()


async def _migrate_online() -> None:
    supplied: AsyncEngine | None = config.attributes.get("engine")
    if supplied is not None:
        await _migrate_with(supplied)
        return

    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        await _migrate_with(engine)
    finally:
        await engine.dispose()


def _emit_sql() -> None:
    """``alembic upgrade --sql``: render statements without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    _emit_sql()
else:
    asyncio.run(_migrate_online())
