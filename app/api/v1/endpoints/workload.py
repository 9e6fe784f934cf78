from fastapi import APIRouter, Depends

from app.core.cache import CacheService
from app.schemas.agent import WorkloadDashboardResponse
from app.schemas.assignment import RebalanceResult
from app.services.assignment_config import AssignmentConfigService
from app.services.workload_dashboard import WorkloadDashboardService
from app.services.workload_rebalance import run_rebalance
from app.repositories.agent_repository import AgentRepository
from app.repositories.assignment_config_repository import AssignmentConfigRepository
from app.repositories.expertise_repository import ExpertiseRepository
from app.repositories.ticket_repository import TicketRepository
from app.api.deps import (
    get_agent_repo,
    get_cache_service,
    get_config_repo,
    get_config_service,
    get_expertise_repo,
    get_session_factory,
    get_ticket_repo,
    get_workload_dashboard_service,
)

router = APIRouter(prefix="/workload", tags=["Workload"])


@router.get("", response_model=WorkloadDashboardResponse)
async def get_workload(
    service: WorkloadDashboardService = Depends(get_workload_dashboard_service),
    config_service: AssignmentConfigService = Depends(get_config_service),
    config_repo: AssignmentConfigRepository = Depends(get_config_repo),
    agent_repo: AgentRepository = Depends(get_agent_repo),
    ticket_repo: TicketRepository = Depends(get_ticket_repo),
    expertise_repo: ExpertiseRepository = Depends(get_expertise_repo),
) -> WorkloadDashboardResponse:
    """Team workload stats and per-agent utilization bands."""
    config = await config_service.get_config(config_repo)
    return await service.get_workload(config, agent_repo, ticket_repo, expertise_repo)


@router.post("/rebalance", response_model=RebalanceResult)
async def rebalance_workload(
    session_factory=Depends(get_session_factory),
    cache: CacheService = Depends(get_cache_service),
) -> RebalanceResult:
    """Run a rebalance now, regardless of ``auto_rebalance`` and threshold."""
    return await run_rebalance(session_factory, manual=True, cache=cache)
