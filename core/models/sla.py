"""SLA classification and escalation models."""

from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class SLAStatus(str, Enum):
    """Severity scale, mildest first. COMPLETED and NO_SLA sit outside the scale."""

    ON_TRACK = "on_track"
    WARNING = "warning"
    CRITICAL = "critical"
    BREACHED = "breached"
    COMPLETED = "completed"
    NO_SLA = "no_sla"


SLA_STATUS_LABELS = {
    SLAStatus.ON_TRACK: "ปกติ",
    SLAStatus.WARNING: "ใกล้ครบกำหนด",
    SLAStatus.CRITICAL: "เร่งด่วน",
    SLAStatus.BREACHED: "เกิน SLA",
    SLAStatus.COMPLETED: "เสร็จสิ้น",
    SLAStatus.NO_SLA: "ไม่มี SLA",
}


class SLAInfo(BaseModel):
    """What a dashboard badge/countdown needs for one request."""

    status: SLAStatus
    elapsed_fraction: float = Field(..., ge=0.0)
    due_at: datetime | None
    time_remaining: timedelta
    is_overdue: bool
    formatted_time_remaining: str

    @property
    def label(self) -> str:
        return SLA_STATUS_LABELS[self.status]


class SLAProgress(BaseModel):
    """Working-time progress between creation and due time."""

    elapsed: timedelta
    total: timedelta
    remaining: timedelta
    percentage: float = Field(..., ge=0.0, le=100.0)


class EscalationRule(BaseModel):
    id: UUID
    name: str
    threshold_percent: int
    notify_roles: list[str] = Field(default_factory=list)
    action_type: str = "notify"
    is_active: bool = True

    model_config = {"from_attributes": True}


class EscalationResult(BaseModel):
    request_id: UUID
    previous_status: SLAStatus | None
    new_status: SLAStatus
    escalation_triggered: bool = False
    rule_id: UUID | None = None


class EscalationSummary(BaseModel):
    processed: int = 0
    escalated: int = 0
