from typing import List

from sqlalchemy import select

from app.models.expertise import AgentCategoryExpertise, AgentSubcategoryExpertise
from app.repositories.base import BaseRepository


class ExpertiseRepository(BaseRepository):
    """Queries against the agent expertise tables."""

    async def get_category_expertise(self) -> List[AgentCategoryExpertise]:
        result = await self._db.execute(select(AgentCategoryExpertise))
        return list(result.scalars().all())

    async def get_subcategory_expertise(self) -> List[AgentSubcategoryExpertise]:
        result = await self._db.execute(select(AgentSubcategoryExpertise))
        return list(result.scalars().all())
