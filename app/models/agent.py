from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint, Index, ARRAY
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func


class Agent(Base):
    """Support agent (or admin) who can be assigned tickets.

    ``max_concurrent_tickets`` is the personal ceiling; ``NULL`` means the
    global ceiling from the assignment configuration applies.
    ``active_tickets_count`` is the capacity counter that assignment
    reserves against with a conditional UPDATE; a trigger on ``tickets``
    re-derives it whenever a ticket is created, deleted or changes status.
    """

    __tablename__ = "agents"
    agent_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(String(20), nullable=False, server_default="agent")
    team_id = Column(String(100))
    availability = Column(String(20), nullable=False, server_default="available")
    max_concurrent_tickets = Column(Integer)
    active_tickets_count = Column(Integer, nullable=False, server_default="0")
    skill_tags = Column(ARRAY(String))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    tickets = relationship(
        "Ticket", back_populates="agent", foreign_keys="Ticket.assigned_to"
    )
    category_expertise = relationship(
        "AgentCategoryExpertise", back_populates="agent", cascade="all, delete-orphan"
    )
    subcategory_expertise = relationship(
        "AgentSubcategoryExpertise",
        back_populates="agent",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("active_tickets_count >= 0", name="ck_active_tickets_nonneg"),
        CheckConstraint(
            "availability IN ('available', 'busy', 'away', 'offline')",
            name="ck_agent_availability",
        ),
        CheckConstraint("role IN ('agent', 'admin', 'customer')", name="ck_agent_role"),
        Index("idx_agents_team_id", "team_id"),
    )
