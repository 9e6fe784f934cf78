class HelpdeskError(Exception):
    """Base class for all helpdesk assignment domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except HelpdeskError`` clause can catch any domain error.
    """

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class TicketNotFoundError(HelpdeskError):
    """Raised when a requested ticket does not exist."""

    def __init__(self, detail: str = "Ticket not found"):
        super().__init__(detail)


class AgentNotFoundError(HelpdeskError):
    """Raised when a requested agent does not exist."""

    def __init__(self, detail: str = "Agent not found"):
        super().__init__(detail)


class AssignmentRuleNotFoundError(HelpdeskError):
    """Raised when an assignment rule does not exist."""

    def __init__(self, detail: str = "Assignment rule not found"):
        super().__init__(detail)


class DuplicateRulePriorityError(HelpdeskError):
    """Raised when two enabled rules would share the same priority.

    Mirrors the partial unique index ``uq_assignment_rules_enabled_priority``.
    """

    def __init__(self, detail: str = "Another enabled rule already uses this priority"):
        super().__init__(detail)


class AgentUnavailableError(HelpdeskError):
    """Raised when a manually chosen agent cannot take a ticket right now."""

    def __init__(self, detail: str = "Agent is not available for assignment"):
        super().__init__(detail)


class AgentCapacityExceededError(HelpdeskError):
    """Raised when a commit would push an agent above capacity.

    Surfaces when concurrent assignments keep winning the capacity
    slot this request was about to take.  The conditional update in
    ``AgentRepository.reserve_slot`` is the enforcement point.
    """

    def __init__(self, detail: str = "Agent has reached maximum concurrent tickets"):
        super().__init__(detail)


class DataProviderUnavailableError(HelpdeskError):
    """Raised when ticket/agent data cannot be loaded (e.g. DB down).

    The only error the engine lets propagate; callers are expected to
    retry with backoff.
    """

    def __init__(self, detail: str = "Ticket and agent data is unavailable"):
        super().__init__(detail)


class TicketNotAssignableError(HelpdeskError):
    """Raised when a resolved or closed ticket is sent for assignment."""

    def __init__(self, detail: str = "Ticket is not in an assignable status"):
        super().__init__(detail)
