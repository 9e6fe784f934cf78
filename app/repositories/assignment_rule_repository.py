from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select

from app.models.assignment_rule import AssignmentRule
from app.repositories.base import BaseRepository


class AssignmentRuleRepository(BaseRepository):
    """Encapsulates queries against the ``assignment_rules`` table."""

    async def list_ordered(self, enabled_only: bool = False) -> List[AssignmentRule]:
        """Return rules by ascending priority, oldest first on ties."""
        stmt = select(AssignmentRule).order_by(
            AssignmentRule.priority, AssignmentRule.created_at
        )
        if enabled_only:
            stmt = stmt.where(AssignmentRule.enabled.is_(True))
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, rule_id: UUID) -> Optional[AssignmentRule]:
        result = await self._db.execute(
            select(AssignmentRule).where(AssignmentRule.rule_id == rule_id)
        )
        return result.scalar_one_or_none()

    async def find_enabled_by_priority(
        self, priority: int, exclude_id: Optional[UUID] = None
    ) -> Optional[AssignmentRule]:
        """Return the enabled rule holding *priority*, ignoring *exclude_id*."""
        stmt = select(AssignmentRule).where(
            AssignmentRule.priority == priority,
            AssignmentRule.enabled.is_(True),
        )
        if exclude_id is not None:
            stmt = stmt.where(AssignmentRule.rule_id != exclude_id)
        result = await self._db.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def create(self, **kwargs: Any) -> AssignmentRule:
        """Insert a rule and load its server defaults."""
        return await self._save(AssignmentRule(**kwargs))

    async def update(self, rule: AssignmentRule, values: Dict[str, Any]) -> AssignmentRule:
        """Apply *values* to *rule* and reload it."""
        for field, value in values.items():
            setattr(rule, field, value)
        return await self._save(rule)

    async def delete(self, rule: AssignmentRule) -> None:
        await self._db.delete(rule)
        await self._db.flush()
