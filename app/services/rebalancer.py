import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Set
from uuid import UUID

from app.core.config import settings
from app.core.constants import MOVABLE_TICKET_STATUSES
from app.schemas.agent import AgentMetrics, OpenTicket
from app.schemas.assignment import RebalanceMove, RebalanceResult
from app.schemas.assignment_config import AssignmentConfig
from app.schemas.ticket import TicketContext
from app.services.scoring import AgentScoringEngine

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _created(ticket: OpenTicket) -> datetime:
    value = ticket.created_at
    if value is None:
        return _OLDEST
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class WorkloadRebalancer:
    """Plan ticket moves from overloaded to underloaded agents.

    Planning only: the returned moves are applied by the caller, one
    independent commit per move.  Team utilization is constant across
    moves (total workload and total capacity never change), so the
    overload/underload bands are fixed for the whole pass.
    """

    def __init__(self, scoring: Optional[AgentScoringEngine] = None):
        self.scoring = scoring or AgentScoringEngine()

    def team_utilization(self, agents: Sequence[AgentMetrics], config: AssignmentConfig) -> float:
        capacity = sum(self.scoring.effective_capacity(a, config) for a in agents)
        if capacity <= 0:
            return 0.0
        return sum(a.current_workload for a in agents) / capacity

    def should_trigger(self, utilization: float, config: AssignmentConfig) -> bool:
        return config.auto_rebalance and utilization * 100 >= config.rebalance_threshold

    def rebalance(
        self,
        agents: Sequence[AgentMetrics],
        config: AssignmentConfig,
        *,
        manual: bool = False,
        now: Optional[datetime] = None,
        overload_margin: Optional[float] = None,
    ) -> RebalanceResult:
        agents = list(agents)
        team_util = self.team_utilization(agents, config)

        if not manual and not self.should_trigger(team_util, config):
            return RebalanceResult(
                success=False,
                triggered=False,
                message=(
                    f"Team utilization {team_util * 100:.1f}% does not trigger "
                    f"rebalancing (auto_rebalance={config.auto_rebalance}, "
                    f"threshold={config.rebalance_threshold}%)"
                ),
                team_utilization=team_util,
            )

        if len(agents) < 2:
            return RebalanceResult(
                success=False,
                message="Need at least 2 agents to rebalance",
                team_utilization=team_util,
            )

        margin = settings.REBALANCE_OVERLOAD_MARGIN if overload_margin is None else overload_margin
        ceiling = team_util + margin

        capacity: Dict[UUID, int] = {
            a.agent_id: self.scoring.effective_capacity(a, config) for a in agents
        }
        load: Dict[UUID, int] = {a.agent_id: a.current_workload for a in agents}
        by_id: Dict[UUID, AgentMetrics] = {a.agent_id: a for a in agents}

        def util(agent_id: UUID, extra: int = 0) -> float:
            cap = capacity[agent_id]
            return (load[agent_id] + extra) / cap if cap > 0 else 0.0

        moved: Set[UUID] = set()
        moves: List[RebalanceMove] = []

        while True:
            source = self._pick_source(agents, util, ceiling, moved)
            if source is None:
                message = "Workload is balanced"
                break

            ticket = self._newest_movable(source, moved)
            targets = [
                by_id[a.agent_id].model_copy(update={"current_workload": load[a.agent_id]})
                for a in agents
                if a.agent_id != source.agent_id
                and util(a.agent_id) < team_util
                and util(a.agent_id, extra=1) <= ceiling
            ]
            ranked = self.scoring.rank(
                self._context_of(ticket), targets, config, now=now
            )
            if not ranked:
                message = (
                    f"Stopped after {len(moves)} move(s): no eligible underloaded "
                    f"agent for tickets of {source.full_name or source.agent_id}"
                )
                break

            head = ranked[0]
            moves.append(
                RebalanceMove(
                    ticket_id=ticket.ticket_id,
                    from_agent_id=source.agent_id,
                    to_agent_id=head.agent_id,
                    score=head.score,
                )
            )
            moved.add(ticket.ticket_id)
            load[source.agent_id] -= 1
            load[head.agent_id] += 1

        logger.info(
            "Rebalance planned %d move(s) at team utilization %.2f: %s",
            len(moves), team_util, message,
        )
        return RebalanceResult(
            success=True,
            message=message,
            team_utilization=team_util,
            moves=moves,
        )

    @staticmethod
    def _movable(agent: AgentMetrics, moved: Set[UUID]) -> List[OpenTicket]:
        return [
            t for t in agent.open_tickets
            if t.status in MOVABLE_TICKET_STATUSES and t.ticket_id not in moved
        ]

    def _pick_source(self, agents, util, ceiling: float, moved: Set[UUID]) -> Optional[AgentMetrics]:
        """Most overloaded agent that still has something to give away."""
        overloaded = [
            a for a in agents
            if util(a.agent_id) > ceiling and self._movable(a, moved)
        ]
        if not overloaded:
            return None
        overloaded.sort(key=lambda a: (-util(a.agent_id), str(a.agent_id)))
        return overloaded[0]

    def _newest_movable(self, agent: AgentMetrics, moved: Set[UUID]) -> OpenTicket:
        tickets = self._movable(agent, moved)
        tickets.sort(key=lambda t: (_created(t), str(t.ticket_id)), reverse=True)
        return tickets[0]

    @staticmethod
    def _context_of(ticket: OpenTicket) -> TicketContext:
        return TicketContext(
            ticket_id=ticket.ticket_id,
            priority=ticket.priority,
            category_id=ticket.category_id,
            subcategory_id=ticket.subcategory_id,
            created_at=ticket.created_at,
        )
