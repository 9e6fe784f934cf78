"""Repository layer – all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the service layer
only contains business logic.
"""

from app.repositories.agent_repository import AgentRepository
from app.repositories.ticket_repository import TicketRepository
from app.repositories.expertise_repository import ExpertiseRepository
from app.repositories.assignment_rule_repository import AssignmentRuleRepository
from app.repositories.assignment_config_repository import AssignmentConfigRepository
from app.repositories.assignment_log_repository import AssignmentLogRepository

__all__ = [
    "AgentRepository",
    "TicketRepository",
    "ExpertiseRepository",
    "AssignmentRuleRepository",
    "AssignmentConfigRepository",
    "AssignmentLogRepository",
]
