from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select

from app.models.assignment_log import TicketAssignmentLog
from app.repositories.base import BaseRepository


class AssignmentLogRepository(BaseRepository):
    """Writes to and summarises the ``ticket_assignment_log`` audit table."""

    async def create(
        self,
        ticket_id: UUID,
        to_agent_id: UUID,
        method: str,
        from_agent_id: Optional[UUID] = None,
        rule_id: Optional[UUID] = None,
        score: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> TicketAssignmentLog:
        """Insert a log entry; flushed with the surrounding transaction."""
        entry = TicketAssignmentLog(
            ticket_id=ticket_id,
            to_agent_id=to_agent_id,
            from_agent_id=from_agent_id,
            method=method,
            rule_id=rule_id,
            score=score,
            reason=reason,
        )
        self._db.add(entry)
        return entry

    async def count_since(self, since: datetime) -> Tuple[int, int]:
        """Return ``(all entries, entries routed by a rule)`` logged since *since*."""
        result = await self._db.execute(
            select(
                func.count(TicketAssignmentLog.log_id),
                func.count(TicketAssignmentLog.rule_id),
            ).where(TicketAssignmentLog.created_at >= since)
        )
        total, by_rule = result.one()
        return int(total), int(by_rule)
