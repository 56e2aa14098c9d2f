"""Maintenance request (ticket) domain models."""

from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class RequestStatus(str, Enum):
    """Persisted request lifecycle status."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PENDING_REVIEW = "pending_review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SLAMode(str, Enum):
    """How SLA hours are counted."""

    CALENDAR = "calendar"
    WORKING_HOURS = "working_hours"


CLOSED_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})


class RequestCreate(BaseModel):
    """Data required to file a maintenance request."""

    branch_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category: str | None = None
    equipment_id: UUID | None = None
    priority: Priority = Priority.MEDIUM
    sla_hours: float | None = Field(None, gt=0, description="Defaults by priority when omitted")
    sla_mode: SLAMode = SLAMode.CALENDAR


class MaintenanceRequest(BaseModel):
    """Full request entity as stored."""

    id: UUID
    organization_id: UUID | None = None
    branch_id: UUID
    created_by: UUID
    title: str
    description: str | None = None
    category: str | None = None
    equipment_id: UUID | None = None
    priority: Priority
    status: RequestStatus
    sla_hours: float | None = None
    sla_mode: SLAMode = SLAMode.CALENDAR
    due_at: datetime | None = None
    is_paused: bool = False
    sla_paused_at: datetime | None = None
    sla_paused_seconds: int = 0
    pause_count: int = 0
    sla_status: str | None = None
    assigned_user_id: UUID | None = None
    assigned_vendor_id: UUID | None = None
    assigned_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def _single_assignee(self) -> "MaintenanceRequest":
        if self.assigned_user_id is not None and self.assigned_vendor_id is not None:
            raise ValueError("assigned_user_id and assigned_vendor_id are mutually exclusive")
        return self

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES

    @property
    def is_assigned(self) -> bool:
        return self.assigned_user_id is not None or self.assigned_vendor_id is not None

    @property
    def paused_duration(self) -> timedelta:
        """Total paused time of closed pauses."""
        return timedelta(seconds=self.sla_paused_seconds)
