from enum import Enum


class TicketPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class TicketStatus(str, Enum):
    open = "open"
    pending = "pending"
    in_progress = "in_progress"
    resolved = "resolved"
    closed = "closed"


class AgentAvailability(str, Enum):
    available = "available"
    busy = "busy"
    away = "away"
    offline = "offline"


class AgentRole(str, Enum):
    agent = "agent"
    admin = "admin"


class ExpertiseLevel(str, Enum):
    expert = "expert"
    intermediate = "intermediate"
    basic = "basic"
