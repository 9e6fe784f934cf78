from sqlalchemy import (
    Column,
    Integer,
    Boolean,
    Float,
    DateTime,
    CheckConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from app.models.base import Base
from sqlalchemy.sql import func


class AssignmentConfiguration(Base):
    """Singleton row (``id = 1``) holding scoring and rebalancing settings."""

    __tablename__ = "assignment_config"
    id = Column(Integer, primary_key=True, server_default=text("1"))
    workload_weight = Column(Integer, nullable=False, server_default="40")
    performance_weight = Column(Integer, nullable=False, server_default="30")
    availability_weight = Column(Integer, nullable=False, server_default="30")
    max_concurrent_tickets = Column(Integer, nullable=False, server_default="10")
    business_hours = Column(
        JSONB,
        nullable=False,
        server_default=text(
            """'{"start": "09:00", "end": "17:00", "timezone": "UTC"}'::jsonb"""
        ),
    )
    auto_rebalance = Column(Boolean, nullable=False, server_default="false")
    rebalance_threshold = Column(Integer, nullable=False, server_default="80")
    performance_blend = Column(
        JSONB, nullable=False, server_default=text("'{}'::jsonb")
    )
    resolution_time_baseline_hours = Column(
        Float, nullable=False, server_default="48"
    )
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (CheckConstraint("id = 1", name="ck_assignment_config_singleton"),)
