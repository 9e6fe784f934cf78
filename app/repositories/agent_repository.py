from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update

from app.core.constants import ASSIGNABLE_ROLES
from app.models.agent import Agent
from app.repositories.base import BaseRepository


class AgentRepository(BaseRepository):
    """Encapsulates every SQL query that touches the ``agents`` table."""

    async def get_by_id(self, agent_id: UUID) -> Optional[Agent]:
        """Return a single agent by primary key, or ``None``."""
        result = await self._db.execute(select(Agent).where(Agent.agent_id == agent_id))
        return result.scalar_one_or_none()

    async def list_assignable(
        self, roles: Iterable[str] = ASSIGNABLE_ROLES
    ) -> List[Agent]:
        """Return every agent whose role may receive tickets, ordered by id."""
        result = await self._db.execute(
            select(Agent).where(Agent.role.in_(list(roles))).order_by(Agent.agent_id)
        )
        return list(result.scalars().all())

    async def reserve_slot(self, agent_id: UUID, capacity: int) -> bool:
        """Take one capacity slot if the agent is still below *capacity*.

        The ``WHERE active_tickets_count < :capacity`` guard is re-checked
        by PostgreSQL after the row lock is acquired, so two concurrent
        reservations can never both push the agent over its ceiling.
        Returns ``False`` when the slot was lost.
        """
        result = await self._db.execute(
            update(Agent)
            .where(
                Agent.agent_id == agent_id,
                Agent.active_tickets_count < capacity,
            )
            .values(active_tickets_count=Agent.active_tickets_count + 1)
            .returning(Agent.agent_id)
        )
        return result.scalar_one_or_none() is not None

    async def release_slot(self, agent_id: UUID) -> None:
        """Give back one capacity slot (never below zero)."""
        await self._db.execute(
            update(Agent)
            .where(Agent.agent_id == agent_id, Agent.active_tickets_count > 0)
            .values(active_tickets_count=Agent.active_tickets_count - 1)
        )
