import asyncio
import logging
from typing import Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheService
from app.core.config import settings
from app.core.constants import WORKLOAD_CACHE_KEY
from app.repositories.agent_repository import AgentRepository
from app.repositories.assignment_config_repository import AssignmentConfigRepository
from app.repositories.assignment_log_repository import AssignmentLogRepository
from app.repositories.expertise_repository import ExpertiseRepository
from app.repositories.ticket_repository import TicketRepository
from app.schemas.assignment import RebalanceMove, RebalanceResult
from app.services.agent_metrics import AgentMetricsService
from app.services.assignment_config import AssignmentConfigService
from app.services.rebalancer import WorkloadRebalancer

logger = logging.getLogger(__name__)


async def _apply_move(
    move: RebalanceMove,
    capacity: int,
    agent_repo: AgentRepository,
    ticket_repo: TicketRepository,
    log_repo: AssignmentLogRepository,
) -> bool:
    """Commit a single planned move; ``False`` if the world moved on."""
    if not await agent_repo.reserve_slot(move.to_agent_id, capacity):
        await agent_repo.rollback()
        logger.info("Skipping move of ticket %s: target %s is full", move.ticket_id, move.to_agent_id)
        return False
    if not await ticket_repo.assign(
        move.ticket_id, move.to_agent_id, expected_owner=move.from_agent_id, movable_only=True
    ):
        await ticket_repo.rollback()
        logger.info("Skipping move of ticket %s: ticket changed since planning", move.ticket_id)
        return False

    await agent_repo.release_slot(move.from_agent_id)
    await log_repo.create(
        ticket_id=move.ticket_id,
        to_agent_id=move.to_agent_id,
        from_agent_id=move.from_agent_id,
        method="rebalance",
        score=move.score,
        reason="Workload rebalance",
    )
    await log_repo.commit()
    return True


async def run_rebalance(
    session_factory: Callable[..., AsyncSession],
    *,
    manual: bool = False,
    cache: Optional[CacheService] = None,
) -> RebalanceResult:
    """One-shot: plan a rebalance and apply each move independently.

    Parameters:
        session_factory: An async context-manager callable that yields
            an ``AsyncSession`` (e.g. ``AsyncSessionLocal``).
        manual: Bypass the ``auto_rebalance`` / threshold trigger.

    Moves that fail to apply are logged and dropped from the result.
    """
    cache = cache or CacheService()

    async with session_factory() as session:
        agent_repo = AgentRepository(session)
        ticket_repo = TicketRepository(session)
        log_repo = AssignmentLogRepository(session)

        config = await AssignmentConfigService(cache=cache).get_config(
            AssignmentConfigRepository(session)
        )
        metrics = await AgentMetricsService().build_metrics(
            agent_repo,
            ticket_repo,
            ExpertiseRepository(session),
            default_capacity=config.max_concurrent_tickets,
        )
        rebalancer = WorkloadRebalancer()
        plan = rebalancer.rebalance(metrics, config, manual=manual)
        if not plan.moves:
            return plan

        capacity: Dict[UUID, int] = {
            m.agent_id: rebalancer.scoring.effective_capacity(m, config) for m in metrics
        }
        applied: List[RebalanceMove] = []
        for move in plan.moves:
            try:
                if await _apply_move(
                    move, capacity[move.to_agent_id], agent_repo, ticket_repo, log_repo
                ):
                    applied.append(move)
            except Exception:
                logger.warning("Failed to apply move of ticket %s", move.ticket_id, exc_info=True)
                await session.rollback()

    if applied:
        await cache.delete(WORKLOAD_CACHE_KEY)

    message = plan.message
    skipped = len(plan.moves) - len(applied)
    if skipped:
        message = f"{message} ({skipped} planned move(s) skipped)"
    return plan.model_copy(update={"moves": applied, "message": message})


async def start_auto_rebalance_loop(
    session_factory: Callable[..., AsyncSession],
) -> None:
    """Infinite loop that runs a threshold-triggered rebalance on a fixed interval.

    Parameters:
        session_factory: An async context-manager callable that yields
            an ``AsyncSession``.
    """
    interval = settings.REBALANCE_CHECK_INTERVAL_SECONDS
    logger.info("Auto-rebalance background task started (interval=%ds)", interval)
    while True:
        try:
            result = await run_rebalance(session_factory)
            if result.triggered:
                logger.info(
                    "Auto-rebalance cycle complete: %d move(s), %s",
                    len(result.moves),
                    result.message,
                )
        except Exception:
            logger.error("Auto-rebalance cycle failed", exc_info=True)
        await asyncio.sleep(interval)
