"""Pytest configuration and shared fixtures.

Organization:
    - Environment: keep settings loaders away from real infrastructure
    - Database Fixtures: SQLite engine with the items table
    - Item Fixtures: insert and read back auction items
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable, Iterator
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from auction_worker.core.database import Base
from auction_worker.core.settings import clear_all_caches
from auction_worker.features.auctions.models import AuctionItem
from tests.factories import build_item

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    """Point YAML config lookups at an empty directory and reset loader caches."""
    for env_name in (
        "APP_CONFIG_DIR",
        "DB_CONFIG_DIR",
        "RABBIT_CONFIG_DIR",
        "CONSUMER_CONFIG_DIR",
        "LOGGING_CONFIG_DIR",
    ):
        monkeypatch.setenv(env_name, str(tmp_path / "conf"))
    for name in ("DATABASE_URL", "RABBIT_URI", "RABBITMQ_URL"):
        monkeypatch.delenv(name, raising=False)
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """SQLite file database with all tables created.

    A file (not ``:memory:``) so that concurrent sessions get their own
    connections, as they do against PostgreSQL.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'items.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


# ============================================================================
# Item Fixtures
# ============================================================================


@pytest.fixture
def item_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Any]:
    """Insert an item and return it (detached).

    Example:
        async def test_bid(item_factory):
            item = await item_factory(extension_threshold_minutes=2)
    """

    async def _create(**overrides: Any) -> AuctionItem:
        item = build_item(**overrides)
        async with session_factory() as session:
            session.add(item)
            await session.commit()
        return item

    return _create


@pytest.fixture
def fetch_item(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., Any]:
    """Read an item back in a fresh session."""

    async def _fetch(item_id: str = "item-1") -> AuctionItem | None:
        async with session_factory() as session:
            return await session.get(AuctionItem, item_id)

    return _fetch
