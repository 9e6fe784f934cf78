from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import AgentAvailability, TicketPriority, TicketStatus


class OpenTicket(BaseModel):
    """An open ticket currently held by an agent (rebalancing input)."""

    model_config = ConfigDict(from_attributes=True)

    ticket_id: UUID
    priority: TicketPriority = TicketPriority.medium
    status: TicketStatus = TicketStatus.open
    category_id: Optional[UUID] = None
    subcategory_id: Optional[UUID] = None
    created_at: Optional[datetime] = None


class AgentMetrics(BaseModel):
    """Per-agent snapshot recomputed for every scoring or rebalance pass.

    Never persisted; built by ``AgentMetricsService`` from the agent,
    ticket and expertise tables.
    """

    agent_id: UUID
    full_name: str = ""
    role: str = "agent"
    team_id: Optional[str] = None
    availability: AgentAvailability = AgentAvailability.available
    current_workload: int = 0
    max_concurrent_tickets: int = 10
    average_resolution_time: float = 24.0
    resolution_rate: float = 0.8
    customer_satisfaction_score: float = 4.0
    category_expertise: Dict[UUID, float] = Field(default_factory=dict)
    subcategory_expertise: Dict[UUID, float] = Field(default_factory=dict)
    specializations: List[str] = Field(default_factory=list)
    open_tickets: List[OpenTicket] = Field(default_factory=list)


class AgentWorkloadRow(BaseModel):
    agent_id: UUID
    full_name: str
    availability: AgentAvailability
    current_workload: int
    max_concurrent_tickets: int
    utilization_percent: float
    status: str


class TeamWorkloadStats(BaseModel):
    total_tickets: int
    total_capacity: int
    average_utilization: float = Field(..., description="percent")
    available_agents: int
    rebalance_recommended: bool


class WorkloadDashboardResponse(BaseModel):
    team: TeamWorkloadStats
    agents: List[AgentWorkloadRow]
