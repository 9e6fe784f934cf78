from typing import Dict, FrozenSet

from app.schemas.common import AgentAvailability, AgentRole, ExpertiseLevel, TicketStatus

# Statuses that count toward an agent's workload
ACTIVE_TICKET_STATUSES: FrozenSet[str] = frozenset(
    {
        TicketStatus.open.value,
        TicketStatus.pending.value,
        TicketStatus.in_progress.value,
    }
)

# Tickets the rebalancer may move (work not yet started)
MOVABLE_TICKET_STATUSES: FrozenSet[str] = frozenset(
    {TicketStatus.open.value, TicketStatus.pending.value}
)

ASSIGNABLE_ROLES: FrozenSet[str] = frozenset(
    {AgentRole.agent.value, AgentRole.admin.value}
)

AVAILABILITY_SCORES: Dict[str, float] = {
    AgentAvailability.available.value: 1.0,
    AgentAvailability.busy.value: 0.5,
    AgentAvailability.away.value: 0.2,
    AgentAvailability.offline.value: 0.0,
}

EXPERTISE_LEVEL_SCORES: Dict[str, float] = {
    ExpertiseLevel.expert.value: 1.0,
    ExpertiseLevel.intermediate.value: 0.7,
    ExpertiseLevel.basic.value: 0.4,
}
PRIMARY_EXPERTISE_BONUS: float = 0.2

# Categories above this expertise are reported as specializations
SPECIALIZATION_THRESHOLD: float = 0.7
# Denominator floor for expertise inferred from resolved-ticket counts
INFERRED_EXPERTISE_MIN_TICKETS: int = 10

# Performance defaults for agents without resolution history
DEFAULT_AVERAGE_RESOLUTION_HOURS: float = 24.0
DEFAULT_RESOLUTION_RATE: float = 0.8
DEFAULT_SATISFACTION_SCORE: float = 4.0
MAX_SATISFACTION_SCORE: float = 5.0

# Confidence reported for the different assignment paths
MANUAL_ASSIGNMENT_CONFIDENCE: float = 100.0
RULE_ASSIGNMENT_CONFIDENCE: float = 95.0
MAX_SCORED_CONFIDENCE: float = 95.0

# Workload dashboard status bands (utilization fraction, inclusive lower bound)
WORKLOAD_STATUS_BANDS = (
    (0.9, "overloaded"),
    (0.7, "busy"),
    (0.3, "moderate"),
)
WORKLOAD_STATUS_DEFAULT: str = "light"

# Redis cache keys
RULES_CACHE_KEY: str = "assignment:rules:enabled"
CONFIG_CACHE_KEY: str = "assignment:config"
WORKLOAD_CACHE_KEY: str = "assignment:workload"
