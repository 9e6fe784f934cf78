from app.models.base import Base
from app.models.agent import Agent
from app.models.ticket import Ticket
from app.models.expertise import AgentCategoryExpertise, AgentSubcategoryExpertise
from app.models.assignment_rule import AssignmentRule
from app.models.assignment_config import AssignmentConfiguration
from app.models.assignment_log import TicketAssignmentLog

__all__ = [
    "Base",
    "Agent",
    "Ticket",
    "AgentCategoryExpertise",
    "AgentSubcategoryExpertise",
    "AssignmentRule",
    "AssignmentConfiguration",
    "TicketAssignmentLog",
]
