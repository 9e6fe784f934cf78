"""Assignment rule schemas (engine value type, requests, responses)."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

from app.core.time_windows import parse_clock
from app.schemas.common import TicketPriority


class TimeWindow(BaseModel):
    """Local clock window ``[start, end)``; ``end < start`` spans midnight.

    Kept as raw strings so that rules stored before validation existed
    still load; the rule engine parses them and skips rules it cannot.
    """

    start: str
    end: str


class RuleConditions(BaseModel):
    """Predicates AND-ed together.  ``None`` or ``[]`` means "not set"."""

    categories: Optional[List[UUID]] = None
    priorities: Optional[List[TicketPriority]] = None
    customer_tiers: Optional[List[str]] = None
    time_of_day: Optional[TimeWindow] = None
    keywords: Optional[List[str]] = None

    @property
    def keyword_terms(self) -> List[str]:
        """Lower-cased keywords; blank entries do not populate the condition."""
        return [k.lower() for k in self.keywords or [] if k.strip()]


class RuleActions(BaseModel):
    """What to do when the rule matches."""

    assign_to_agent: Optional[UUID] = None
    assign_to_team: Optional[str] = None
    require_skills: List[str] = Field(default_factory=list)
    max_response_time: Optional[int] = Field(None, ge=0, description="minutes")
    escalate_after: Optional[int] = Field(None, ge=0, description="minutes")
    notify_manager: bool = False


class AssignmentRule(BaseModel):
    """A routing rule as the engine sees it."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(validation_alias=AliasChoices("id", "rule_id"))
    name: str
    description: Optional[str] = None
    priority: int
    enabled: bool = True
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    actions: RuleActions = Field(default_factory=RuleActions)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


def _check_time_window(conditions: Optional[RuleConditions]) -> None:
    if conditions is None or conditions.time_of_day is None:
        return
    try:
        parse_clock(conditions.time_of_day.start)
        parse_clock(conditions.time_of_day.end)
    except ValueError as exc:
        raise ValueError(f"time_of_day must use HH:MM ({exc})") from exc


class AssignmentRuleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    priority: int = Field(..., ge=0)
    enabled: bool = True
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    actions: RuleActions = Field(default_factory=RuleActions)

    @model_validator(mode="after")
    def validate_time_window(self) -> Self:
        """Reject malformed ``time_of_day`` at request time (HTTP 422)."""
        _check_time_window(self.conditions)
        return self


class AssignmentRuleUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    priority: Optional[int] = Field(None, ge=0)
    enabled: Optional[bool] = None
    conditions: Optional[RuleConditions] = None
    actions: Optional[RuleActions] = None

    @model_validator(mode="after")
    def validate_time_window(self) -> Self:
        _check_time_window(self.conditions)
        return self


class AssignmentRuleResponse(AssignmentRule):
    pass


class RuleStatistics(BaseModel):
    """Rule counts plus today's share of assignments a rule routed."""

    total_rules: int
    active_rules: int
    assignments_today: int
    rule_assignments_today: int
    rule_match_rate: float
