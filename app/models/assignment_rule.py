from sqlalchemy import Column, String, Integer, Boolean, Text, DateTime, Index, text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from app.models.base import Base
from sqlalchemy.sql import func


class AssignmentRule(Base):
    """Routing rule evaluated in ascending ``priority`` order.

    ``conditions`` and ``actions`` are JSONB documents validated by the
    ``RuleConditions`` / ``RuleActions`` schemas on the way in and out.
    Enabled rules must have distinct priorities (partial unique index).
    """

    __tablename__ = "assignment_rules"
    rule_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    name = Column(String(200), nullable=False)
    description = Column(Text)
    priority = Column(Integer, nullable=False)
    enabled = Column(Boolean, nullable=False, server_default="true")
    conditions = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    actions = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index(
            "uq_assignment_rules_enabled_priority",
            "priority",
            unique=True,
            postgresql_where=text("enabled"),
        ),
    )
