from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    CheckConstraint,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func

_LEVEL_CHECK = "expertise_level IN ('expert', 'intermediate', 'basic')"


class AgentCategoryExpertise(Base):
    """Declared expertise of an agent in a ticket category."""

    __tablename__ = "agent_category_expertise"
    expertise_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    agent_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agents.agent_id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id = Column(UUID(as_uuid=True), nullable=False)
    expertise_level = Column(String(20), nullable=False, server_default="basic")
    is_primary = Column(Boolean, nullable=False, server_default="false")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    agent = relationship("Agent", back_populates="category_expertise")

    __table_args__ = (
        UniqueConstraint("agent_id", "category_id", name="uq_agent_category_expertise"),
        CheckConstraint(_LEVEL_CHECK, name="ck_category_expertise_level"),
    )


class AgentSubcategoryExpertise(Base):
    """Declared expertise of an agent in a ticket subcategory."""

    __tablename__ = "agent_subcategory_expertise"
    expertise_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    agent_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agents.agent_id", ondelete="CASCADE"),
        nullable=False,
    )
    subcategory_id = Column(UUID(as_uuid=True), nullable=False)
    expertise_level = Column(String(20), nullable=False, server_default="basic")
    is_primary = Column(Boolean, nullable=False, server_default="false")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    agent = relationship("Agent", back_populates="subcategory_expertise")

    __table_args__ = (
        UniqueConstraint(
            "agent_id", "subcategory_id", name="uq_agent_subcategory_expertise"
        ),
        CheckConstraint(_LEVEL_CHECK, name="ck_subcategory_expertise_level"),
    )
