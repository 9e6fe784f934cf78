import logging
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from redis.asyncio import Redis

from app.core.config import settings
from app.core.database import AsyncSessionLocal, get_db

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Redis client factory
# ---------------------------------------------------------------------------


async def get_redis_client() -> Redis:
    """Get an async Redis client instance using connection pooling."""
    try:
        client = Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        await client.ping()
        return client
    except Exception:
        logger.warning("Redis unavailable – caching disabled for this request")
        return None  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Repository factory functions (one per repository, each gets the shared db)
# ---------------------------------------------------------------------------


async def get_agent_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.agent_repository import AgentRepository

    return AgentRepository(db)


async def get_ticket_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.ticket_repository import TicketRepository

    return TicketRepository(db)


async def get_expertise_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.expertise_repository import ExpertiseRepository

    return ExpertiseRepository(db)


async def get_rule_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.assignment_rule_repository import AssignmentRuleRepository

    return AssignmentRuleRepository(db)


async def get_config_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.assignment_config_repository import (
        AssignmentConfigRepository,
    )

    return AssignmentConfigRepository(db)


async def get_log_repo(
    db: AsyncSession = Depends(get_db),
):
    from app.repositories.assignment_log_repository import AssignmentLogRepository

    return AssignmentLogRepository(db)


async def get_session_factory():
    """Session factory for operations that commit in several transactions."""
    return AsyncSessionLocal


# ---------------------------------------------------------------------------
# Cache service factory
# ---------------------------------------------------------------------------


async def get_cache_service(
    redis_client: Redis = Depends(get_redis_client),
):
    """Build a :class:`CacheService` backed by the shared Redis client."""
    from app.core.cache import CacheService

    return CacheService(redis_client=redis_client)


# ---------------------------------------------------------------------------
# Service factory functions
# ---------------------------------------------------------------------------


async def get_rule_service(
    cache=Depends(get_cache_service),
):
    """Build an :class:`AssignmentRuleService` with injected cache."""
    from app.services.assignment_rules import AssignmentRuleService

    return AssignmentRuleService(cache=cache)


async def get_config_service(
    cache=Depends(get_cache_service),
):
    """Build an :class:`AssignmentConfigService` with injected cache."""
    from app.services.assignment_config import AssignmentConfigService

    return AssignmentConfigService(cache=cache)


async def get_assignment_service(
    cache=Depends(get_cache_service),
    rule_service=Depends(get_rule_service),
    config_service=Depends(get_config_service),
):
    """Build a :class:`TicketAssignmentService` with injected dependencies."""
    from app.services.ticket_assignment import TicketAssignmentService

    return TicketAssignmentService(
        cache=cache,
        rule_service=rule_service,
        config_service=config_service,
    )


async def get_workload_dashboard_service(
    cache=Depends(get_cache_service),
):
    """Build a :class:`WorkloadDashboardService` with injected cache."""
    from app.services.workload_dashboard import WorkloadDashboardService

    return WorkloadDashboardService(cache=cache)
