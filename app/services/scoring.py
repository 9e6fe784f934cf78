import logging
from datetime import datetime
from typing import Iterable, List, Optional

from app.core.constants import AVAILABILITY_SCORES, MAX_SATISFACTION_SCORE
from app.core.time_windows import window_contains
from app.schemas.agent import AgentMetrics
from app.schemas.assignment import RankedCandidate, ScoreBreakdown
from app.schemas.assignment_config import AssignmentConfig
from app.schemas.common import AgentAvailability
from app.schemas.ticket import TicketContext

logger = logging.getLogger(__name__)


class AgentScoringEngine:
    """Rank candidate agents for a ticket by weighted composite score.

    Eligibility is checked first and failing agents are dropped, not
    penalised:

    - availability must be ``available``
    - ``current_workload`` must be below the effective capacity
    - the current time must fall inside ``config.business_hours``

    Each eligible agent then gets three factor scores in ``[0, 1]``:

    - workload      ``1 - workload / capacity``
    - performance   blend of resolution rate, resolution speed and
                    satisfaction (``config.performance_blend``)
    - availability  categorical (available 1.0 … offline 0.0)

    ``final = Σ wᵢ·sᵢ / Σ wᵢ + expertise``.  Expertise for the ticket's
    category (boosted by subcategory expertise) is a flat additive
    tie-breaker outside the normalised base.  With all weights zero the
    base is the unweighted mean of the three factors.

    Ordering is descending score, then ascending workload, then agent
    id, so identical inputs always rank identically.
    """

    def rank(
        self,
        ticket: TicketContext,
        candidates: Iterable[AgentMetrics],
        config: AssignmentConfig,
        *,
        now: Optional[datetime] = None,
    ) -> List[RankedCandidate]:
        if not self.within_business_hours(config, now):
            logger.info("Outside business hours; no agent is eligible")
            return []

        weights = self._weights(config)
        ranked: List[RankedCandidate] = []
        for agent in candidates:
            capacity = self.effective_capacity(agent, config)
            if not self._is_eligible(agent, capacity):
                continue

            breakdown = ScoreBreakdown(
                workload=self.workload_score(agent.current_workload, capacity),
                performance=self.performance_score(agent, config),
                availability=AVAILABILITY_SCORES.get(agent.availability.value, 0.0),
                expertise=self.expertise_bonus(agent, ticket),
            )
            ranked.append(
                RankedCandidate(
                    agent_id=agent.agent_id,
                    score=self._combine(breakdown, weights),
                    current_workload=agent.current_workload,
                    breakdown=breakdown,
                )
            )

        ranked.sort(key=lambda c: (-c.score, c.current_workload, str(c.agent_id)))
        return ranked

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    @staticmethod
    def effective_capacity(agent: AgentMetrics, config: AssignmentConfig) -> int:
        """Agent's own ceiling, capped by the global one."""
        ceiling = config.max_concurrent_tickets
        if agent.max_concurrent_tickets and agent.max_concurrent_tickets > 0:
            return min(agent.max_concurrent_tickets, ceiling)
        return ceiling

    @staticmethod
    def _is_eligible(agent: AgentMetrics, capacity: int) -> bool:
        return (
            agent.availability == AgentAvailability.available
            and agent.current_workload < capacity
        )

    @staticmethod
    def within_business_hours(config: AssignmentConfig, now: Optional[datetime]) -> bool:
        hours = config.business_hours
        try:
            return window_contains(hours.start, hours.end, now, hours.timezone)
        except (ValueError, KeyError) as exc:
            logger.warning("Ignoring malformed business hours %s: %s", hours, exc)
            return True

    # ------------------------------------------------------------------
    # Factor scores
    # ------------------------------------------------------------------

    @staticmethod
    def workload_score(current_workload: int, capacity: int) -> float:
        if capacity <= 0:
            return 0.0
        return max(0.0, 1.0 - current_workload / capacity)

    @staticmethod
    def performance_score(agent: AgentMetrics, config: AssignmentConfig) -> float:
        baseline = config.resolution_time_baseline_hours
        if baseline and baseline > 0:
            speed = max(0.0, 1.0 - agent.average_resolution_time / baseline)
        else:
            speed = 0.0
        rate = min(max(agent.resolution_rate, 0.0), 1.0)
        satisfaction = min(max(agent.customer_satisfaction_score / MAX_SATISFACTION_SCORE, 0.0), 1.0)

        blend = config.performance_blend
        parts = (
            (max(blend.resolution_rate_weight, 0.0), rate),
            (max(blend.resolution_speed_weight, 0.0), speed),
            (max(blend.satisfaction_weight, 0.0), satisfaction),
        )
        total = sum(w for w, _ in parts)
        if total == 0:
            return (rate + speed + satisfaction) / 3
        return sum(w * s for w, s in parts) / total

    @staticmethod
    def expertise_bonus(agent: AgentMetrics, ticket: TicketContext) -> float:
        bonus = 0.0
        if ticket.category_id is not None:
            bonus = agent.category_expertise.get(ticket.category_id, 0.0)
        if ticket.subcategory_id is not None and ticket.subcategory_id in agent.subcategory_expertise:
            bonus = max(bonus, agent.subcategory_expertise[ticket.subcategory_id])
        return bonus

    # ------------------------------------------------------------------
    # Combination
    # ------------------------------------------------------------------

    @staticmethod
    def _weights(config: AssignmentConfig) -> tuple:
        raw = (config.workload_weight, config.performance_weight, config.availability_weight)
        if any(w < 0 for w in raw):
            logger.warning("Negative scoring weights %s clamped to 0", raw)
        return tuple(max(w, 0) for w in raw)

    @staticmethod
    def _combine(breakdown: ScoreBreakdown, weights: tuple) -> float:
        factors = (breakdown.workload, breakdown.performance, breakdown.availability)
        total = sum(weights)
        if total == 0:
            base = sum(factors) / len(factors)
        else:
            base = sum(w * s for w, s in zip(weights, factors)) / total
        return base + breakdown.expertise
