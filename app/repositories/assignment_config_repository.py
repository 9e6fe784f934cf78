import logging
from typing import Any, Dict, Optional

from sqlalchemy import select

from app.models.assignment_config import AssignmentConfiguration
from app.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

_SINGLETON_ID = 1


class AssignmentConfigRepository(BaseRepository):
    """Reads and writes the singleton ``assignment_config`` row."""

    async def get(self) -> Optional[AssignmentConfiguration]:
        result = await self._db.execute(
            select(AssignmentConfiguration).where(
                AssignmentConfiguration.id == _SINGLETON_ID
            )
        )
        return result.scalar_one_or_none()

    async def seed_if_empty(self, defaults: Dict[str, Any]) -> AssignmentConfiguration:
        """Return the stored row, inserting *defaults* when there is none."""
        row = await self.get()
        if row is not None:
            return row
        logger.info("assignment_config table is empty, seeding defaults")
        return await self._save(AssignmentConfiguration(id=_SINGLETON_ID, **defaults))

    async def upsert(self, values: Dict[str, Any]) -> AssignmentConfiguration:
        """Overwrite the singleton with *values* (last writer wins)."""
        row = await self.get()
        if row is None:
            row = AssignmentConfiguration(id=_SINGLETON_ID, **values)
        else:
            for field, value in values.items():
                setattr(row, field, value)
        return await self._save(row)
