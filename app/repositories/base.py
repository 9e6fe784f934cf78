from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository:
    """Holds the request's ``AsyncSession``.

    Repositories sharing one session share one transaction: the
    assignment path reserves a capacity slot, moves the ticket and
    writes the audit row through three repositories and commits once.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _save(self, instance: ModelT) -> ModelT:
        """Add *instance*, flush it and reload server-side defaults."""
        self._db.add(instance)
        await self._db.flush()
        await self._db.refresh(instance)
        return instance

    async def flush(self) -> None:
        await self._db.flush()

    async def commit(self) -> None:
        await self._db.commit()

    async def rollback(self) -> None:
        await self._db.rollback()
