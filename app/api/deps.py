"""API-layer dependency functions.

Re-exports all dependency factories from ``app.dependencies`` so that
endpoint modules only need to import from ``app.api.deps``.
"""

from app.dependencies import (
    # Repository factories
    get_agent_repo,
    get_ticket_repo,
    get_expertise_repo,
    get_rule_repo,
    get_config_repo,
    get_log_repo,
    get_session_factory,
    # Service factories
    get_rule_service,
    get_config_service,
    get_assignment_service,
    get_workload_dashboard_service,
    get_cache_service,
    # Redis
    get_redis_client,
)

__all__ = [
    "get_agent_repo",
    "get_ticket_repo",
    "get_expertise_repo",
    "get_rule_repo",
    "get_config_repo",
    "get_log_repo",
    "get_session_factory",
    "get_rule_service",
    "get_config_service",
    "get_assignment_service",
    "get_workload_dashboard_service",
    "get_cache_service",
    "get_redis_client",
]
