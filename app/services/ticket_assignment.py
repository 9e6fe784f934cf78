import logging
from datetime import datetime
from typing import List, NamedTuple, Optional, Tuple
from uuid import UUID

from app.core.cache import CacheService
from app.core.config import settings
from app.core.constants import (
    ACTIVE_TICKET_STATUSES,
    MANUAL_ASSIGNMENT_CONFIDENCE,
    MAX_SCORED_CONFIDENCE,
    RULE_ASSIGNMENT_CONFIDENCE,
    WORKLOAD_CACHE_KEY,
)
from app.core.exceptions import (
    AgentCapacityExceededError,
    AgentNotFoundError,
    AgentUnavailableError,
    TicketNotAssignableError,
    TicketNotFoundError,
)
from app.models.ticket import Ticket
from app.repositories.agent_repository import AgentRepository
from app.repositories.assignment_config_repository import AssignmentConfigRepository
from app.repositories.assignment_log_repository import AssignmentLogRepository
from app.repositories.assignment_rule_repository import AssignmentRuleRepository
from app.repositories.expertise_repository import ExpertiseRepository
from app.repositories.ticket_repository import TicketRepository
from app.schemas.agent import AgentMetrics
from app.schemas.assignment import (
    AssignmentResult,
    CandidateListResponse,
    RankedCandidate,
    RuleOutcome,
)
from app.schemas.assignment_config import AssignmentConfig
from app.schemas.common import AgentAvailability
from app.schemas.ticket import TicketContext
from app.services.agent_metrics import AgentMetricsService
from app.services.assignment_config import AssignmentConfigService
from app.services.assignment_rules import AssignmentRuleService
from app.services.rule_engine import AssignmentRuleEngine
from app.services.scoring import AgentScoringEngine

logger = logging.getLogger(__name__)

# How many runner-up agents to report alongside a scored assignment
_ALTERNATIVES_REPORTED: int = 3


class _Choice(NamedTuple):
    agent_id: UUID
    capacity: int
    method: str
    confidence: float
    score: Optional[float]
    reason: str
    alternatives: List[UUID]


class TicketAssignmentService:
    """Dispatches a ticket to an agent.

    Pipeline per attempt:

    1. Evaluate assignment rules (first match wins).
    2. A pinned agent is used directly when still eligible; otherwise,
       or when no rule pins, eligible agents are ranked by the scoring
       engine (restricted to the pinned team and required skills).
    3. The head candidate's capacity slot is reserved with a conditional
       UPDATE.  Losing that race refreshes metrics and re-ranks, up to
       ``ASSIGNMENT_MAX_ATTEMPTS`` times.

    Every commit writes a ``ticket_assignment_log`` row.
    """

    def __init__(
        self,
        cache: Optional[CacheService] = None,
        rule_service: Optional[AssignmentRuleService] = None,
        config_service: Optional[AssignmentConfigService] = None,
        metrics_service: Optional[AgentMetricsService] = None,
        rule_engine: Optional[AssignmentRuleEngine] = None,
        scoring: Optional[AgentScoringEngine] = None,
    ) -> None:
        self._cache: CacheService = cache or CacheService()
        self._rule_engine = rule_engine or AssignmentRuleEngine()
        self._rules = rule_service or AssignmentRuleService(cache=self._cache, engine=self._rule_engine)
        self._config = config_service or AssignmentConfigService(cache=self._cache)
        self._metrics = metrics_service or AgentMetricsService()
        self._scoring = scoring or AgentScoringEngine()

    async def assign_ticket(
        self,
        ticket_id: UUID,
        agent_repo: AgentRepository,
        ticket_repo: TicketRepository,
        expertise_repo: ExpertiseRepository,
        rule_repo: AssignmentRuleRepository,
        config_repo: AssignmentConfigRepository,
        log_repo: AssignmentLogRepository,
        *,
        agent_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> AssignmentResult:
        """Assign *ticket_id*, manually when *agent_id* is given.

        Returns ``success=False`` when no agent is eligible; the ticket
        then stays in the queue.  Raises ``AgentCapacityExceededError``
        when every attempt lost its capacity slot to a concurrent writer and
        ``TicketNotAssignableError`` for resolved or closed tickets.
        """
        ticket = await self._load_assignable_ticket(ticket_id, ticket_repo)
        config = await self._config.get_config(config_repo)

        if agent_id is not None:
            return await self._assign_manually(
                ticket, agent_id, config, agent_repo, ticket_repo, log_repo
            )

        context = TicketContext.model_validate(ticket)
        rules = await self._rules.get_active_rules(rule_repo)
        outcome = self._rule_engine.evaluate(
            context, rules, timezone=config.business_hours.timezone, now=now
        )

        max_attempts = max(settings.ASSIGNMENT_MAX_ATTEMPTS, 1)
        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                ticket = await self._load_assignable_ticket(ticket_id, ticket_repo)

            metrics = await self._metrics.build_metrics(
                agent_repo,
                ticket_repo,
                expertise_repo,
                default_capacity=config.max_concurrent_tickets,
                now=now,
            )
            choice = self._choose(context, outcome, metrics, config, now)
            if choice is None:
                logger.info("No eligible agent for ticket %s; left in queue", ticket_id)
                return AssignmentResult(
                    success=False,
                    ticket_id=ticket_id,
                    reason="No eligible agent available",
                    rule_id=outcome.rule_id,
                    directives=outcome.directives,
                )

            if choice.agent_id == ticket.assigned_to:
                return self._result(ticket_id, choice, outcome, reason="Already assigned to the best candidate")

            committed = await self._commit(
                ticket, choice, agent_repo, ticket_repo, log_repo, rule_id=outcome.rule_id
            )
            if committed:
                logger.info(
                    "Assigned ticket %s to agent %s via %s (confidence %.1f)",
                    ticket_id, choice.agent_id, choice.method, choice.confidence,
                )
                return self._result(ticket_id, choice, outcome)

            logger.info(
                "Lost capacity race for agent %s on ticket %s (attempt %d/%d)",
                choice.agent_id, ticket_id, attempt, max_attempts,
            )

        raise AgentCapacityExceededError(
            f"Could not reserve capacity for ticket {ticket_id} after {max_attempts} attempts"
        )

    async def preview_candidates(
        self,
        ticket_id: UUID,
        agent_repo: AgentRepository,
        ticket_repo: TicketRepository,
        expertise_repo: ExpertiseRepository,
        rule_repo: AssignmentRuleRepository,
        config_repo: AssignmentConfigRepository,
        *,
        now: Optional[datetime] = None,
    ) -> CandidateListResponse:
        """Rule outcome and ranked candidates, without committing anything."""
        ticket = await self._load_ticket(ticket_id, ticket_repo)
        config = await self._config.get_config(config_repo)
        context = TicketContext.model_validate(ticket)
        rules = await self._rules.get_active_rules(rule_repo)
        outcome = self._rule_engine.evaluate(
            context, rules, timezone=config.business_hours.timezone, now=now
        )
        metrics = await self._metrics.build_metrics(
            agent_repo,
            ticket_repo,
            expertise_repo,
            default_capacity=config.max_concurrent_tickets,
            now=now,
        )
        ranked = self._scoring.rank(
            context, self._filter_candidates(metrics, outcome), config, now=now
        )
        return CandidateListResponse(ticket_id=ticket_id, outcome=outcome, candidates=ranked)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _choose(
        self,
        context: TicketContext,
        outcome: RuleOutcome,
        metrics: List[AgentMetrics],
        config: AssignmentConfig,
        now: Optional[datetime],
    ) -> Optional[_Choice]:
        if outcome.is_pinned and outcome.agent_id is not None:
            pinned = next((m for m in metrics if m.agent_id == outcome.agent_id), None)
            if pinned is not None and self._scoring.rank(context, [pinned], config, now=now):
                return _Choice(
                    agent_id=pinned.agent_id,
                    capacity=self._scoring.effective_capacity(pinned, config),
                    method="rule",
                    confidence=RULE_ASSIGNMENT_CONFIDENCE,
                    score=None,
                    reason=f"Matched rule '{outcome.rule_name}'",
                    alternatives=[],
                )
            logger.info(
                "Rule %s pinned agent %s who is not eligible; falling back to scoring",
                outcome.rule_name, outcome.agent_id,
            )

        ranked = self._scoring.rank(
            context, self._filter_candidates(metrics, outcome), config, now=now
        )
        if not ranked:
            return None

        head = ranked[0]
        by_id = {m.agent_id: m for m in metrics}
        via_team = outcome.is_pinned and outcome.team_id is not None
        return _Choice(
            agent_id=head.agent_id,
            capacity=self._scoring.effective_capacity(by_id[head.agent_id], config),
            method="rule" if via_team else "score",
            confidence=min(head.score * 100, MAX_SCORED_CONFIDENCE),
            score=head.score,
            reason=self._scored_reason(head, outcome if via_team else None),
            alternatives=[c.agent_id for c in ranked[1:1 + _ALTERNATIVES_REPORTED]],
        )

    @staticmethod
    def _filter_candidates(metrics: List[AgentMetrics], outcome: RuleOutcome) -> List[AgentMetrics]:
        """Apply the rule's team pin and ``require_skills`` to the pool."""
        candidates = metrics
        if outcome.is_pinned and outcome.team_id is not None:
            candidates = [m for m in candidates if m.team_id == outcome.team_id]

        skills = outcome.directives.require_skills if outcome.directives else []
        wanted = {s.lower() for s in skills if s}
        if wanted:
            candidates = [
                m for m in candidates
                if wanted & {s.lower() for s in m.specializations}
            ]
        return candidates

    @staticmethod
    def _scored_reason(head: RankedCandidate, outcome: Optional[RuleOutcome]) -> str:
        reason = f"Best composite score {head.score:.3f} (workload {head.current_workload})"
        if outcome is not None:
            reason = f"Matched rule '{outcome.rule_name}' for team {outcome.team_id}; {reason}"
        return reason

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    async def _assign_manually(
        self,
        ticket: Ticket,
        agent_id: UUID,
        config: AssignmentConfig,
        agent_repo: AgentRepository,
        ticket_repo: TicketRepository,
        log_repo: AssignmentLogRepository,
    ) -> AssignmentResult:
        agent = await agent_repo.get_by_id(agent_id)
        if agent is None:
            raise AgentNotFoundError(f"Agent {agent_id} not found")

        snapshot = AgentMetrics(
            agent_id=agent.agent_id,
            availability=agent.availability,
            current_workload=agent.active_tickets_count,
            max_concurrent_tickets=agent.max_concurrent_tickets or 0,
        )
        capacity = self._scoring.effective_capacity(snapshot, config)
        if snapshot.availability != AgentAvailability.available:
            raise AgentUnavailableError(f"Agent {agent_id} is {snapshot.availability.value}")
        if snapshot.current_workload >= capacity:
            raise AgentUnavailableError(
                f"Agent {agent_id} is at capacity ({snapshot.current_workload}/{capacity})"
            )

        choice = _Choice(
            agent_id=agent_id,
            capacity=capacity,
            method="manual",
            confidence=MANUAL_ASSIGNMENT_CONFIDENCE,
            score=None,
            reason="Manually assigned",
            alternatives=[],
        )
        if ticket.assigned_to == agent_id:
            return self._result(ticket.ticket_id, choice, None, reason="Already assigned to this agent")
        if not await self._commit(ticket, choice, agent_repo, ticket_repo, log_repo):
            raise AgentCapacityExceededError(f"Agent {agent_id} has no free capacity")

        logger.info("Manually assigned ticket %s to agent %s", ticket.ticket_id, agent_id)
        return self._result(ticket.ticket_id, choice, None)

    async def _commit(
        self,
        ticket: Ticket,
        choice: _Choice,
        agent_repo: AgentRepository,
        ticket_repo: TicketRepository,
        log_repo: AssignmentLogRepository,
        rule_id: Optional[UUID] = None,
    ) -> bool:
        """Reserve a slot, move the ticket and log it in one transaction.

        Returns ``False`` (after rolling back) when either the capacity
        slot or the ticket itself was taken by a concurrent writer.
        """
        previous = ticket.assigned_to
        if not await agent_repo.reserve_slot(choice.agent_id, choice.capacity):
            await agent_repo.rollback()
            return False
        if not await ticket_repo.assign(ticket.ticket_id, choice.agent_id, expected_owner=previous):
            await ticket_repo.rollback()
            return False
        if previous is not None:
            await agent_repo.release_slot(previous)

        await log_repo.create(
            ticket_id=ticket.ticket_id,
            to_agent_id=choice.agent_id,
            from_agent_id=previous,
            method=choice.method,
            rule_id=rule_id,
            score=choice.score,
            reason=choice.reason,
        )
        await log_repo.commit()
        await self._cache.delete(WORKLOAD_CACHE_KEY)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _load_ticket(ticket_id: UUID, ticket_repo: TicketRepository) -> Ticket:
        ticket = await ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    @classmethod
    async def _load_assignable_ticket(cls, ticket_id: UUID, ticket_repo: TicketRepository) -> Ticket:
        # Resolved and closed tickets are not counted in active_tickets_count
        ticket = await cls._load_ticket(ticket_id, ticket_repo)
        if ticket.status not in ACTIVE_TICKET_STATUSES:
            raise TicketNotAssignableError(f"Ticket {ticket_id} is {ticket.status}")
        return ticket

    @staticmethod
    def _result(
        ticket_id: UUID,
        choice: _Choice,
        outcome: Optional[RuleOutcome],
        reason: Optional[str] = None,
    ) -> AssignmentResult:
        return AssignmentResult(
            success=True,
            ticket_id=ticket_id,
            agent_id=choice.agent_id,
            reason=reason or choice.reason,
            confidence=choice.confidence,
            rule_id=outcome.rule_id if outcome else None,
            directives=outcome.directives if outcome else None,
            alternative_agents=choice.alternatives,
        )
