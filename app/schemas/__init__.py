"""Pydantic schemas package – re-exports for convenience."""

# Common enums
from app.schemas.common import (
    TicketPriority as TicketPriority,
    TicketStatus as TicketStatus,
    AgentAvailability as AgentAvailability,
    AgentRole as AgentRole,
    ExpertiseLevel as ExpertiseLevel,
)

# Ticket schemas
from app.schemas.ticket import TicketContext as TicketContext

# Agent schemas
from app.schemas.agent import (
    AgentMetrics as AgentMetrics,
    OpenTicket as OpenTicket,
    WorkloadDashboardResponse as WorkloadDashboardResponse,
)

# Rule schemas
from app.schemas.assignment_rule import (
    AssignmentRule as AssignmentRule,
    AssignmentRuleCreate as AssignmentRuleCreate,
    AssignmentRuleUpdate as AssignmentRuleUpdate,
    RuleActions as RuleActions,
    RuleConditions as RuleConditions,
    RuleStatistics as RuleStatistics,
)

# Configuration schemas
from app.schemas.assignment_config import (
    AssignmentConfig as AssignmentConfig,
    AssignmentConfigUpdate as AssignmentConfigUpdate,
)

# Engine results
from app.schemas.assignment import (
    AssignmentResult as AssignmentResult,
    RankedCandidate as RankedCandidate,
    RebalanceResult as RebalanceResult,
    RuleOutcome as RuleOutcome,
)
