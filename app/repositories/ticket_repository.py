from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, update, func

from app.core.constants import ACTIVE_TICKET_STATUSES, MOVABLE_TICKET_STATUSES
from app.models.ticket import Ticket
from app.repositories.base import BaseRepository


class TicketRepository(BaseRepository):
    """Encapsulates queries against the ``tickets`` table."""

    async def get_by_id(self, ticket_id: UUID) -> Optional[Ticket]:
        """Return a single ticket by primary key, or ``None``."""
        result = await self._db.execute(
            select(Ticket).where(Ticket.ticket_id == ticket_id)
        )
        return result.scalar_one_or_none()

    async def get_active_by_agent(self) -> Dict[UUID, List[Ticket]]:
        """Group every open/pending/in-progress assigned ticket by owner.

        Tickets are returned newest first within each agent.
        """
        result = await self._db.execute(
            select(Ticket)
            .where(
                Ticket.assigned_to.is_not(None),
                Ticket.status.in_(list(ACTIVE_TICKET_STATUSES)),
            )
            .order_by(Ticket.assigned_to, Ticket.created_at.desc())
        )
        grouped: Dict[UUID, List[Ticket]] = {}
        for ticket in result.scalars().all():
            grouped.setdefault(ticket.assigned_to, []).append(ticket)
        return grouped

    async def get_resolution_stats(self, since: datetime) -> Dict[UUID, Dict[str, Any]]:
        """Per-agent resolution aggregates for tickets resolved since *since*.

        Returns ``{agent_id: {"resolved": int, "avg_hours": float | None,
        "avg_rating": float | None}}``.
        """
        hours = func.extract("epoch", Ticket.resolved_at - Ticket.created_at) / 3600.0
        result = await self._db.execute(
            select(
                Ticket.resolved_by,
                func.count(Ticket.ticket_id),
                func.avg(hours),
                func.avg(Ticket.satisfaction_rating),
            )
            .where(
                Ticket.resolved_by.is_not(None),
                Ticket.resolved_at.is_not(None),
                Ticket.resolved_at >= since,
            )
            .group_by(Ticket.resolved_by)
        )
        return {
            agent_id: {
                "resolved": int(resolved or 0),
                "avg_hours": float(avg_hours) if avg_hours is not None else None,
                "avg_rating": float(avg_rating) if avg_rating is not None else None,
            }
            for agent_id, resolved, avg_hours, avg_rating in result.all()
        }

    async def get_assigned_counts(self, since: datetime) -> Dict[UUID, int]:
        """Number of tickets created since *since* per current owner."""
        result = await self._db.execute(
            select(Ticket.assigned_to, func.count(Ticket.ticket_id))
            .where(Ticket.assigned_to.is_not(None), Ticket.created_at >= since)
            .group_by(Ticket.assigned_to)
        )
        return {agent_id: int(count) for agent_id, count in result.all()}

    async def get_resolved_category_counts(self) -> Dict[UUID, Dict[UUID, int]]:
        """All-time resolved ticket counts per agent and category."""
        result = await self._db.execute(
            select(Ticket.resolved_by, Ticket.category_id, func.count(Ticket.ticket_id))
            .where(Ticket.resolved_by.is_not(None), Ticket.category_id.is_not(None))
            .group_by(Ticket.resolved_by, Ticket.category_id)
        )
        counts: Dict[UUID, Dict[UUID, int]] = {}
        for agent_id, category_id, count in result.all():
            counts.setdefault(agent_id, {})[category_id] = int(count)
        return counts

    async def assign(
        self,
        ticket_id: UUID,
        agent_id: UUID,
        expected_owner: Optional[UUID] = None,
        movable_only: bool = False,
    ) -> bool:
        """Hand the ticket to *agent_id* if it is still owned by *expected_owner*.

        ``expected_owner=None`` means the ticket must still be unassigned.
        The ticket must still be active; with *movable_only* it must be
        open or pending, which is what a rebalance move requires.  Returns
        ``False`` when somebody else changed the ticket first.
        """
        owner_clause = (
            Ticket.assigned_to.is_(None)
            if expected_owner is None
            else Ticket.assigned_to == expected_owner
        )
        statuses = MOVABLE_TICKET_STATUSES if movable_only else ACTIVE_TICKET_STATUSES
        stmt = update(Ticket).where(
            Ticket.ticket_id == ticket_id,
            owner_clause,
            Ticket.status.in_(list(statuses)),
        )
        result = await self._db.execute(
            stmt.values(assigned_to=agent_id).returning(Ticket.ticket_id)
        )
        return result.scalar_one_or_none() is not None
