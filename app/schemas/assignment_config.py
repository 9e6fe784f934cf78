"""Assignment configuration schemas."""

from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing_extensions import Self

from app.core.time_windows import parse_clock


class BusinessHours(BaseModel):
    start: str = "09:00"
    end: str = "17:00"
    timezone: str = "UTC"


class PerformanceBlend(BaseModel):
    """Relative weights of the three performance sub-factors."""

    resolution_rate_weight: float = 1.0
    resolution_speed_weight: float = 1.0
    satisfaction_weight: float = 1.0


class AssignmentConfig(BaseModel):
    """Process-wide scoring and rebalancing configuration.

    Passed explicitly into the scoring engine and the rebalancer.  No
    bounds are enforced here so that stored values always load; the
    engine clamps what it cannot use.
    """

    model_config = ConfigDict(from_attributes=True)

    workload_weight: int = 40
    performance_weight: int = 30
    availability_weight: int = 30
    max_concurrent_tickets: int = 10
    business_hours: BusinessHours = Field(default_factory=BusinessHours)
    auto_rebalance: bool = False
    rebalance_threshold: int = 80
    performance_blend: PerformanceBlend = Field(default_factory=PerformanceBlend)
    resolution_time_baseline_hours: float = 48.0

    @property
    def weight_sum(self) -> int:
        return self.workload_weight + self.performance_weight + self.availability_weight

    @property
    def weights_balanced(self) -> bool:
        """Weights are meant to add up to 100; anything else is tolerated."""
        return self.weight_sum == 100


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------


class BusinessHoursUpdate(BusinessHours):
    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        parse_clock(value)
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone {value!r}") from exc
        return value


class PerformanceBlendUpdate(BaseModel):
    resolution_rate_weight: float = Field(1.0, ge=0)
    resolution_speed_weight: float = Field(1.0, ge=0)
    satisfaction_weight: float = Field(1.0, ge=0)


class AssignmentConfigUpdate(BaseModel):
    """Full replacement of the singleton (last writer wins)."""

    workload_weight: int = Field(40, ge=0, le=100)
    performance_weight: int = Field(30, ge=0, le=100)
    availability_weight: int = Field(30, ge=0, le=100)
    max_concurrent_tickets: int = Field(10, ge=1)
    business_hours: BusinessHoursUpdate = Field(default_factory=BusinessHoursUpdate)
    auto_rebalance: bool = False
    rebalance_threshold: int = Field(80, ge=0, le=100)
    performance_blend: PerformanceBlendUpdate = Field(
        default_factory=PerformanceBlendUpdate
    )
    resolution_time_baseline_hours: float = Field(48.0, gt=0)

    @model_validator(mode="after")
    def validate_blend(self) -> Self:
        blend = self.performance_blend
        if (
            blend.resolution_rate_weight
            + blend.resolution_speed_weight
            + blend.satisfaction_weight
        ) <= 0:
            raise ValueError("performance_blend needs at least one positive weight")
        return self


class AssignmentConfigResponse(BaseModel):
    workload_weight: int
    performance_weight: int
    availability_weight: int
    max_concurrent_tickets: int
    business_hours: BusinessHours
    auto_rebalance: bool
    rebalance_threshold: int
    performance_blend: PerformanceBlend
    resolution_time_baseline_hours: float
    weight_sum: int
    weights_balanced: bool
    warning: Optional[str] = None

    @classmethod
    def from_config(cls, config: AssignmentConfig) -> "AssignmentConfigResponse":
        warning = None
        if config.weight_sum == 0:
            warning = (
                "All scoring weights are 0; agents are ranked by the "
                "unweighted average of the three factors"
            )
        elif not config.weights_balanced:
            warning = (
                f"Scoring weights add up to {config.weight_sum}, not 100; "
                "scores are normalised by the actual sum"
            )
        return cls(
            **config.model_dump(),
            weight_sum=config.weight_sum,
            weights_balanced=config.weights_balanced,
            warning=warning,
        )
