import logging
from typing import Optional

from pydantic import ValidationError

from app.core.cache import CacheService
from app.core.config import settings
from app.core.constants import (
    WORKLOAD_CACHE_KEY,
    WORKLOAD_STATUS_BANDS,
    WORKLOAD_STATUS_DEFAULT,
)
from app.repositories.agent_repository import AgentRepository
from app.repositories.expertise_repository import ExpertiseRepository
from app.repositories.ticket_repository import TicketRepository
from app.schemas.agent import AgentWorkloadRow, TeamWorkloadStats, WorkloadDashboardResponse
from app.schemas.assignment_config import AssignmentConfig
from app.schemas.common import AgentAvailability
from app.services.agent_metrics import AgentMetricsService
from app.services.scoring import AgentScoringEngine

logger = logging.getLogger(__name__)


def workload_status(utilization: float) -> str:
    """Band label for a utilization fraction."""
    for lower_bound, label in WORKLOAD_STATUS_BANDS:
        if utilization >= lower_bound:
            return label
    return WORKLOAD_STATUS_DEFAULT


class WorkloadDashboardService:
    """Team workload overview with Redis caching.

    Dependencies are injected via the constructor so the class remains
    stateless and easily testable.
    """

    def __init__(
        self,
        cache: Optional[CacheService] = None,
        metrics_service: Optional[AgentMetricsService] = None,
        scoring: Optional[AgentScoringEngine] = None,
    ) -> None:
        self._cache: CacheService = cache or CacheService()
        self._metrics = metrics_service or AgentMetricsService()
        self._scoring = scoring or AgentScoringEngine()

    async def get_workload(
        self,
        config: AssignmentConfig,
        agent_repo: AgentRepository,
        ticket_repo: TicketRepository,
        expertise_repo: ExpertiseRepository,
    ) -> WorkloadDashboardResponse:
        """Return team stats and one row per agent, busiest first."""
        cached = await self._cache.get_json(WORKLOAD_CACHE_KEY)
        if cached is not None:
            try:
                return WorkloadDashboardResponse.model_validate(cached)
            except ValidationError:
                logger.warning("Discarding invalid cached workload dashboard")

        metrics = await self._metrics.build_metrics(
            agent_repo,
            ticket_repo,
            expertise_repo,
            default_capacity=config.max_concurrent_tickets,
        )

        rows = []
        total_tickets = 0
        total_capacity = 0
        for agent in metrics:
            capacity = self._scoring.effective_capacity(agent, config)
            utilization = agent.current_workload / capacity if capacity > 0 else 0.0
            total_tickets += agent.current_workload
            total_capacity += capacity
            rows.append(
                AgentWorkloadRow(
                    agent_id=agent.agent_id,
                    full_name=agent.full_name,
                    availability=agent.availability,
                    current_workload=agent.current_workload,
                    max_concurrent_tickets=capacity,
                    utilization_percent=round(utilization * 100, 1),
                    status=workload_status(utilization),
                )
            )
        rows.sort(key=lambda r: (-r.utilization_percent, str(r.agent_id)))

        team_utilization = total_tickets / total_capacity if total_capacity > 0 else 0.0
        response = WorkloadDashboardResponse(
            team=TeamWorkloadStats(
                total_tickets=total_tickets,
                total_capacity=total_capacity,
                average_utilization=round(team_utilization * 100, 1),
                available_agents=sum(
                    1 for a in metrics if a.availability == AgentAvailability.available
                ),
                rebalance_recommended=team_utilization * 100 >= config.rebalance_threshold,
            ),
            agents=rows,
        )

        await self._cache.set_json(
            WORKLOAD_CACHE_KEY, response.model_dump(mode="json"), ttl=settings.REDIS_CACHE_TTL
        )
        return response
