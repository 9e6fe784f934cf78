import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.constants import (
    DEFAULT_AVERAGE_RESOLUTION_HOURS,
    DEFAULT_RESOLUTION_RATE,
    DEFAULT_SATISFACTION_SCORE,
    EXPERTISE_LEVEL_SCORES,
    INFERRED_EXPERTISE_MIN_TICKETS,
    PRIMARY_EXPERTISE_BONUS,
    SPECIALIZATION_THRESHOLD,
)
from app.core.exceptions import DataProviderUnavailableError
from app.repositories.agent_repository import AgentRepository
from app.repositories.expertise_repository import ExpertiseRepository
from app.repositories.ticket_repository import TicketRepository
from app.schemas.agent import AgentMetrics, OpenTicket

logger = logging.getLogger(__name__)


def expertise_score(level: Optional[str], is_primary: bool = False) -> float:
    """Map a declared expertise level to ``[0, 1]``."""
    base = EXPERTISE_LEVEL_SCORES.get((level or "").lower(), 0.0)
    if is_primary:
        base += PRIMARY_EXPERTISE_BONUS
    return min(base, 1.0)


def inferred_expertise(category_counts: Dict[UUID, int]) -> Dict[UUID, float]:
    """Expertise from resolved-ticket history for agents with none declared.

    Each category scores ``count / max(max_count, 10)`` so that a handful
    of resolved tickets never reads as full expertise.
    """
    if not category_counts:
        return {}
    denominator = max(max(category_counts.values()), INFERRED_EXPERTISE_MIN_TICKETS)
    return {category: count / denominator for category, count in category_counts.items()}


def _resolution_rate(resolved: int, assigned: int) -> float:
    if assigned <= 0:
        return DEFAULT_RESOLUTION_RATE if resolved == 0 else 1.0
    return min(resolved / assigned, 1.0)


class AgentMetricsService:
    """Builds the per-pass ``AgentMetrics`` snapshot from the database.

    Nothing here is cached: workload changes with every assignment, so
    every scoring or rebalance pass starts from a fresh read.
    """

    async def build_metrics(
        self,
        agent_repo: AgentRepository,
        ticket_repo: TicketRepository,
        expertise_repo: ExpertiseRepository,
        *,
        default_capacity: int,
        now: Optional[datetime] = None,
    ) -> List[AgentMetrics]:
        """Return metrics for every assignable agent, ordered by agent id.

        Raises ``DataProviderUnavailableError`` when the database cannot
        be read.
        """
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=settings.PERFORMANCE_WINDOW_DAYS)

        try:
            agents = await agent_repo.list_assignable()
            active = await ticket_repo.get_active_by_agent()
            resolution = await ticket_repo.get_resolution_stats(since)
            assigned = await ticket_repo.get_assigned_counts(since)
            resolved_by_category = await ticket_repo.get_resolved_category_counts()
            category_rows = await expertise_repo.get_category_expertise()
            subcategory_rows = await expertise_repo.get_subcategory_expertise()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Failed to load agent metrics: %s", exc)
            raise DataProviderUnavailableError() from exc

        category_expertise = self._expertise_by_agent(
            category_rows, key="category_id"
        )
        subcategory_expertise = self._expertise_by_agent(
            subcategory_rows, key="subcategory_id"
        )

        metrics: List[AgentMetrics] = []
        for agent in agents:
            tickets = active.get(agent.agent_id, [])
            stats = resolution.get(agent.agent_id, {})
            resolved = stats.get("resolved", 0)

            categories = category_expertise.get(agent.agent_id)
            if not categories:
                categories = inferred_expertise(
                    resolved_by_category.get(agent.agent_id, {})
                )

            avg_hours = stats.get("avg_hours")
            avg_rating = stats.get("avg_rating")
            metrics.append(
                AgentMetrics(
                    agent_id=agent.agent_id,
                    full_name=agent.full_name,
                    role=agent.role,
                    team_id=agent.team_id,
                    availability=agent.availability,
                    current_workload=len(tickets),
                    max_concurrent_tickets=agent.max_concurrent_tickets or default_capacity,
                    average_resolution_time=(
                        avg_hours if avg_hours is not None else DEFAULT_AVERAGE_RESOLUTION_HOURS
                    ),
                    resolution_rate=_resolution_rate(resolved, assigned.get(agent.agent_id, 0)),
                    customer_satisfaction_score=(
                        avg_rating if avg_rating is not None else DEFAULT_SATISFACTION_SCORE
                    ),
                    category_expertise=categories,
                    subcategory_expertise=subcategory_expertise.get(agent.agent_id, {}),
                    specializations=self._specializations(categories, agent.skill_tags),
                    open_tickets=[
                        OpenTicket(
                            ticket_id=t.ticket_id,
                            priority=t.priority,
                            status=t.status,
                            category_id=t.category_id,
                            subcategory_id=t.subcategory_id,
                            created_at=t.created_at,
                        )
                        for t in tickets
                    ],
                )
            )
        return metrics

    @staticmethod
    def _expertise_by_agent(rows: Iterable, key: str) -> Dict[UUID, Dict[UUID, float]]:
        grouped: Dict[UUID, Dict[UUID, float]] = {}
        for row in rows:
            grouped.setdefault(row.agent_id, {})[getattr(row, key)] = expertise_score(
                row.expertise_level, row.is_primary
            )
        return grouped

    @staticmethod
    def _specializations(
        categories: Dict[UUID, float], skill_tags: Optional[List[str]]
    ) -> List[str]:
        specs = [
            str(category)
            for category, score in sorted(categories.items(), key=lambda kv: str(kv[0]))
            if score > SPECIALIZATION_THRESHOLD
        ]
        for tag in skill_tags or []:
            if tag and tag not in specs:
                specs.append(tag)
        return specs
