from sqlalchemy import Column, String, Float, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func


class TicketAssignmentLog(Base):
    """Audit trail of every assignment and rebalance move.

    ``method`` is one of ``manual``, ``rule``, ``score`` or ``rebalance``.
    ``from_agent_id`` is ``NULL`` for first-time assignments.
    """

    __tablename__ = "ticket_assignment_log"
    log_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    ticket_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tickets.ticket_id", ondelete="CASCADE"),
        nullable=False,
    )
    from_agent_id = Column(
        UUID(as_uuid=True), ForeignKey("agents.agent_id", ondelete="SET NULL")
    )
    to_agent_id = Column(
        UUID(as_uuid=True), ForeignKey("agents.agent_id", ondelete="SET NULL")
    )
    method = Column(String(20), nullable=False)
    rule_id = Column(UUID(as_uuid=True))
    score = Column(Float)
    reason = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    ticket = relationship("Ticket", back_populates="assignment_logs")

    __table_args__ = (
        Index("idx_assignment_log_ticket_created", "ticket_id", "created_at"),
    )
