from typing import Any, Dict, List


DEFAULT_ASSIGNMENT_RULES: List[Dict[str, Any]] = [
    {
        "name": "Urgent tickets to tier 2",
        "description": "Urgent issues skip the general queue",
        "priority": 10,
        "conditions": {"priorities": ["urgent"]},
        "actions": {
            "assign_to_team": "tier2",
            "max_response_time": 30,
            "notify_manager": True,
        },
    },
    {
        "name": "Enterprise and VIP customers",
        "description": None,
        "priority": 20,
        "conditions": {"customer_tiers": ["enterprise", "vip"]},
        "actions": {"assign_to_team": "tier2", "escalate_after": 60},
    },
    {
        "name": "Billing questions",
        "description": "Invoices, refunds and failed charges",
        "priority": 30,
        "conditions": {"keywords": ["invoice", "refund", "billing", "charge"]},
        "actions": {"assign_to_team": "billing"},
    },
    {
        "name": "Overnight coverage",
        "description": "Outside office hours only the night team is on shift",
        "priority": 40,
        "conditions": {"time_of_day": {"start": "22:00", "end": "06:00"}},
        "actions": {"assign_to_team": "night"},
    },
    {
        "name": "Database problems need SQL skills",
        "description": None,
        "priority": 50,
        "conditions": {"keywords": ["database", "sql", "query", "migration"]},
        "actions": {"require_skills": ["sql"]},
    },
]
