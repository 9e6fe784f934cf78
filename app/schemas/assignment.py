"""Engine outcomes: rule directives, rankings, assignment and rebalance results."""

from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.assignment_rule import AssignmentRule
from app.schemas.ticket import TicketContext


class RuleDirectives(BaseModel):
    """Side-channel instructions for the dispatcher.

    The engine only reports these; escalation timers and manager
    notifications belong to the caller.
    """

    require_skills: List[str] = Field(default_factory=list)
    max_response_time: Optional[int] = None
    escalate_after: Optional[int] = None
    notify_manager: bool = False


class RuleOutcomeKind(str, Enum):
    pinned = "pinned"
    no_match = "no_match"


class RuleOutcome(BaseModel):
    kind: RuleOutcomeKind
    rule_id: Optional[UUID] = None
    rule_name: Optional[str] = None
    agent_id: Optional[UUID] = None
    team_id: Optional[str] = None
    directives: Optional[RuleDirectives] = None

    @property
    def is_pinned(self) -> bool:
        return self.kind == RuleOutcomeKind.pinned

    @classmethod
    def no_match(cls, rule: Optional[AssignmentRule] = None) -> "RuleOutcome":
        """No pin.  *rule* is the first matching rule when it had no target."""
        if rule is None:
            return cls(kind=RuleOutcomeKind.no_match)
        return cls(
            kind=RuleOutcomeKind.no_match,
            rule_id=rule.id,
            rule_name=rule.name,
            directives=_directives_of(rule),
        )

    @classmethod
    def pinned_by(cls, rule: AssignmentRule) -> "RuleOutcome":
        """Pin to the rule's agent; the team is only used without an agent."""
        actions = rule.actions
        return cls(
            kind=RuleOutcomeKind.pinned,
            rule_id=rule.id,
            rule_name=rule.name,
            agent_id=actions.assign_to_agent,
            team_id=None if actions.assign_to_agent else actions.assign_to_team,
            directives=_directives_of(rule),
        )


def _directives_of(rule: AssignmentRule) -> RuleDirectives:
    actions = rule.actions
    return RuleDirectives(
        require_skills=list(actions.require_skills),
        max_response_time=actions.max_response_time,
        escalate_after=actions.escalate_after,
        notify_manager=actions.notify_manager,
    )


class ScoreBreakdown(BaseModel):
    workload: float
    performance: float
    availability: float
    expertise: float


class RankedCandidate(BaseModel):
    agent_id: UUID
    score: float
    current_workload: int
    breakdown: ScoreBreakdown


class AssignmentResult(BaseModel):
    success: bool
    ticket_id: UUID
    agent_id: Optional[UUID] = None
    reason: str
    confidence: float = 0.0
    rule_id: Optional[UUID] = None
    directives: Optional[RuleDirectives] = None
    alternative_agents: List[UUID] = Field(default_factory=list)


class RebalanceMove(BaseModel):
    ticket_id: UUID
    from_agent_id: UUID
    to_agent_id: UUID
    score: float = 0.0


class RebalanceResult(BaseModel):
    success: bool
    triggered: bool = True
    message: str
    team_utilization: float = Field(0.0, description="fraction 0-1")
    moves: List[RebalanceMove] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AssignTicketRequest(BaseModel):
    """Omit ``agent_id`` for rule/score based assignment."""

    agent_id: Optional[UUID] = None


class RuleEvaluationRequest(BaseModel):
    ticket: TicketContext


class CandidateListResponse(BaseModel):
    ticket_id: UUID
    outcome: RuleOutcome
    candidates: List[RankedCandidate]
