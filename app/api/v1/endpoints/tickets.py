from fastapi import APIRouter, Depends, Request
from uuid import UUID
from typing import Optional

from app.core.rate_limit import limiter
from app.schemas.assignment import (
    AssignmentResult,
    AssignTicketRequest,
    CandidateListResponse,
)
from app.services.ticket_assignment import TicketAssignmentService
from app.repositories.agent_repository import AgentRepository
from app.repositories.assignment_config_repository import AssignmentConfigRepository
from app.repositories.assignment_log_repository import AssignmentLogRepository
from app.repositories.assignment_rule_repository import AssignmentRuleRepository
from app.repositories.expertise_repository import ExpertiseRepository
from app.repositories.ticket_repository import TicketRepository
from app.api.deps import (
    get_agent_repo,
    get_assignment_service,
    get_config_repo,
    get_expertise_repo,
    get_log_repo,
    get_rule_repo,
    get_ticket_repo,
)

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post("/{ticket_id}/assign", response_model=AssignmentResult)
@limiter.limit("30/minute")
async def assign_ticket(
    request: Request,
    ticket_id: UUID,
    request_body: Optional[AssignTicketRequest] = None,
    service: TicketAssignmentService = Depends(get_assignment_service),
    agent_repo: AgentRepository = Depends(get_agent_repo),
    ticket_repo: TicketRepository = Depends(get_ticket_repo),
    expertise_repo: ExpertiseRepository = Depends(get_expertise_repo),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
    config_repo: AssignmentConfigRepository = Depends(get_config_repo),
    log_repo: AssignmentLogRepository = Depends(get_log_repo),
) -> AssignmentResult:
    """Assign a ticket to an agent.

    With ``agent_id`` in the body the ticket goes to that agent (manual
    override); otherwise rules are evaluated and eligible agents scored.
    ``success=false`` means nobody is eligible and the ticket stays
    queued.  Rate-limited to 30 requests/minute per IP.
    """
    return await service.assign_ticket(
        ticket_id,
        agent_repo=agent_repo,
        ticket_repo=ticket_repo,
        expertise_repo=expertise_repo,
        rule_repo=rule_repo,
        config_repo=config_repo,
        log_repo=log_repo,
        agent_id=request_body.agent_id if request_body else None,
    )


@router.get("/{ticket_id}/candidates", response_model=CandidateListResponse)
async def preview_candidates(
    ticket_id: UUID,
    service: TicketAssignmentService = Depends(get_assignment_service),
    agent_repo: AgentRepository = Depends(get_agent_repo),
    ticket_repo: TicketRepository = Depends(get_ticket_repo),
    expertise_repo: ExpertiseRepository = Depends(get_expertise_repo),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
    config_repo: AssignmentConfigRepository = Depends(get_config_repo),
) -> CandidateListResponse:
    """Ranked candidate agents with score breakdowns; nothing is committed."""
    return await service.preview_candidates(
        ticket_id,
        agent_repo=agent_repo,
        ticket_repo=ticket_repo,
        expertise_repo=expertise_repo,
        rule_repo=rule_repo,
        config_repo=config_repo,
    )
