from fastapi import APIRouter, Depends

from app.schemas.assignment_config import AssignmentConfigResponse, AssignmentConfigUpdate
from app.services.assignment_config import AssignmentConfigService
from app.repositories.assignment_config_repository import AssignmentConfigRepository
from app.api.deps import get_config_repo, get_config_service

router = APIRouter(prefix="/assignment-config", tags=["Assignment Config"])


@router.get("", response_model=AssignmentConfigResponse)
async def get_assignment_config(
    service: AssignmentConfigService = Depends(get_config_service),
    config_repo: AssignmentConfigRepository = Depends(get_config_repo),
) -> AssignmentConfigResponse:
    """Current scoring and rebalancing configuration.

    ``warning`` is set when the three weights do not add up to 100.
    """
    config = await service.get_config(config_repo)
    return AssignmentConfigResponse.from_config(config)


@router.put("", response_model=AssignmentConfigResponse)
async def update_assignment_config(
    request_body: AssignmentConfigUpdate,
    service: AssignmentConfigService = Depends(get_config_service),
    config_repo: AssignmentConfigRepository = Depends(get_config_repo),
) -> AssignmentConfigResponse:
    """Replace the configuration (last writer wins)."""
    config = await service.update_config(request_body, config_repo)
    return AssignmentConfigResponse.from_config(config)
