from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    CheckConstraint,
    ForeignKey,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func


class Ticket(Base):
    """Customer support ticket.

    Only the columns the assignment engine reads or writes are modelled:
    routing attributes (priority, category, customer tier), ownership
    (``assigned_to``), and the resolution fields that feed agent
    performance metrics.
    """

    __tablename__ = "tickets"
    ticket_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    title = Column(String(300), nullable=False)
    description = Column(Text)
    priority = Column(String(20), nullable=False, server_default="medium")
    status = Column(String(20), nullable=False, server_default="open")
    category_id = Column(UUID(as_uuid=True))
    subcategory_id = Column(UUID(as_uuid=True))
    customer_tier = Column(String(50))
    assigned_to = Column(
        UUID(as_uuid=True), ForeignKey("agents.agent_id", ondelete="SET NULL")
    )
    resolved_by = Column(
        UUID(as_uuid=True), ForeignKey("agents.agent_id", ondelete="SET NULL")
    )
    resolved_at = Column(DateTime(timezone=True))
    satisfaction_rating = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    agent = relationship("Agent", back_populates="tickets", foreign_keys=[assigned_to])
    assignment_logs = relationship(
        "TicketAssignmentLog", back_populates="ticket", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent')", name="ck_ticket_priority"
        ),
        CheckConstraint(
            "status IN ('open', 'pending', 'in_progress', 'resolved', 'closed')",
            name="ck_ticket_status",
        ),
        CheckConstraint(
            "satisfaction_rating IS NULL OR satisfaction_rating BETWEEN 1 AND 5",
            name="ck_ticket_satisfaction_range",
        ),
        Index("idx_tickets_assigned_status", "assigned_to", "status"),
        Index("idx_tickets_resolved_by_resolved_at", "resolved_by", "resolved_at"),
    )
