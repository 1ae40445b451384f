"""Generic primary-key access for SQLAlchemy models.

Sessions are always passed in; a repository holds no connection state, so
one instance is shared by every concurrent delivery. Anything beyond lookup
by key belongs in a subclass or directly on the session.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from auction_worker.core.database.exceptions import NotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Key lookups for one mapped class.

        class ItemRepository(BaseRepository[AuctionItem]): ...

        item = await ItemRepository(AuctionItem).get_or_raise(session, "item-1")
    """

    __slots__ = ("_logger", "model")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        self._logger = logging.getLogger(f"repository.{model.__name__}")

    async def get(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        fresh: bool = False,
    ) -> T | None:
        """Row for ``id`` or None.

        With ``fresh`` the row is re-read even if the session already holds
        the object, picking up commits made by other sessions.
        """
        instance = await session.get(self.model, id, populate_existing=fresh)
        self._logger.debug(
            "db.get",
            extra={"entity": self.model.__name__, "id": str(id), "found": instance is not None},
        )
        return instance

    async def get_or_raise(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        fresh: bool = False,
    ) -> T:
        """Like ``get`` but raises NotFoundError for a missing row."""
        instance = await self.get(session, id, fresh=fresh)
        if instance is not None:
            return instance
        self._logger.info("Entity not found", extra={"entity": self.model.__name__, "id": str(id)})
        raise NotFoundError(self.model.__name__, {"id": id})


__all__ = ["BaseRepository"]
