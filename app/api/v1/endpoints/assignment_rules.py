from fastapi import APIRouter, Depends, Response
from uuid import UUID
from typing import List

from app.schemas.assignment import RuleEvaluationRequest, RuleOutcome
from app.schemas.assignment_rule import (
    AssignmentRuleCreate,
    AssignmentRuleResponse,
    AssignmentRuleUpdate,
    RuleStatistics,
)
from app.services.assignment_config import AssignmentConfigService
from app.services.assignment_rules import AssignmentRuleService
from app.repositories.assignment_config_repository import AssignmentConfigRepository
from app.repositories.assignment_log_repository import AssignmentLogRepository
from app.repositories.assignment_rule_repository import AssignmentRuleRepository
from app.api.deps import (
    get_config_repo,
    get_config_service,
    get_log_repo,
    get_rule_repo,
    get_rule_service,
)

router = APIRouter(prefix="/assignment-rules", tags=["Assignment Rules"])


@router.get("", response_model=List[AssignmentRuleResponse])
async def list_rules(
    service: AssignmentRuleService = Depends(get_rule_service),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
):
    """All rules in evaluation order (ascending priority)."""
    return await service.list_rules(rule_repo)


@router.post("", response_model=AssignmentRuleResponse, status_code=201)
async def create_rule(
    request_body: AssignmentRuleCreate,
    service: AssignmentRuleService = Depends(get_rule_service),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
):
    """Create a rule.  Enabled rules must not share a priority (409)."""
    return await service.create_rule(request_body, rule_repo)


@router.post("/evaluate", response_model=RuleOutcome)
async def evaluate_rules(
    request_body: RuleEvaluationRequest,
    service: AssignmentRuleService = Depends(get_rule_service),
    config_service: AssignmentConfigService = Depends(get_config_service),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
    config_repo: AssignmentConfigRepository = Depends(get_config_repo),
):
    """Dry-run the enabled rules against a ticket; nothing is assigned."""
    config = await config_service.get_config(config_repo)
    return await service.evaluate(
        request_body.ticket, rule_repo, timezone=config.business_hours.timezone
    )


@router.get("/statistics", response_model=RuleStatistics)
async def rule_statistics(
    service: AssignmentRuleService = Depends(get_rule_service),
    config_service: AssignmentConfigService = Depends(get_config_service),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
    config_repo: AssignmentConfigRepository = Depends(get_config_repo),
    log_repo: AssignmentLogRepository = Depends(get_log_repo),
):
    """Rule counts and today's rule match rate (business-hours time zone)."""
    config = await config_service.get_config(config_repo)
    return await service.get_statistics(
        rule_repo, log_repo, timezone=config.business_hours.timezone
    )


@router.get("/{rule_id}", response_model=AssignmentRuleResponse)
async def get_rule(
    rule_id: UUID,
    service: AssignmentRuleService = Depends(get_rule_service),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
):
    return await service.get_rule(rule_id, rule_repo)


@router.put("/{rule_id}", response_model=AssignmentRuleResponse)
async def update_rule(
    rule_id: UUID,
    request_body: AssignmentRuleUpdate,
    service: AssignmentRuleService = Depends(get_rule_service),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
):
    """Partial update; omitted fields keep their stored value."""
    return await service.update_rule(rule_id, request_body, rule_repo)


@router.patch("/{rule_id}/toggle", response_model=AssignmentRuleResponse)
async def toggle_rule(
    rule_id: UUID,
    service: AssignmentRuleService = Depends(get_rule_service),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
):
    return await service.toggle_rule(rule_id, rule_repo)


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: UUID,
    service: AssignmentRuleService = Depends(get_rule_service),
    rule_repo: AssignmentRuleRepository = Depends(get_rule_repo),
):
    await service.delete_rule(rule_id, rule_repo)
    return Response(status_code=204)
