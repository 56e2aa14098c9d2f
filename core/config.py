"""SLA and assignment configuration."""

from pydantic import BaseModel, Field, field_validator

from core.models.request import Priority
from core.models.technician import AssignmentStrategy
from utils.timezone import get_zone


class MaintenanceConfig(BaseModel):
    """
    Tunables for the SLA and assignment engines.

    Classification thresholds (75/90/100%) are not configurable; dashboards
    depend on the exact cut-over points.
    """

    branch_timezone: str = Field(
        default="Asia/Bangkok",
        description="IANA timezone used to interpret branch opening hours",
    )

    default_sla_hours: dict[Priority, int] = Field(
        default={
            Priority.CRITICAL: 4,
            Priority.HIGH: 8,
            Priority.MEDIUM: 24,
            Priority.LOW: 72,
        },
        description="SLA duration applied when a request is created without one",
    )

    default_max_workload: int = Field(
        default=10,
        description="Max concurrent jobs for technicians without a configured limit",
        ge=1,
        le=100,
    )

    default_strategy: AssignmentStrategy = Field(
        default=AssignmentStrategy.SKILL_MATCH,
        description="Strategy used when no assignment rule matches",
    )

    calendar_horizon_days: int = Field(
        default=366,
        description="How far ahead the working-hours walk and holiday lookup reach",
        ge=7,
        le=1096,
    )

    @field_validator("branch_timezone")
    @classmethod
    def _known_timezone(cls, v: str) -> str:
        get_zone(v)
        return v

    def sla_hours_for(self, priority: Priority) -> int:
        return self.default_sla_hours.get(priority, self.default_sla_hours[Priority.MEDIUM])
