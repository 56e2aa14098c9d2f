"""Job pause (SLA clock suspension) models."""

from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class PauseReasonCategory(str, Enum):
    WAITING_PARTS = "waiting_parts"
    WAITING_APPROVAL = "waiting_approval"
    WAITING_VENDOR = "waiting_vendor"
    CUSTOMER_UNAVAILABLE = "customer_unavailable"
    WEATHER = "weather"
    OTHER = "other"


PAUSE_REASON_LABELS = {
    PauseReasonCategory.WAITING_PARTS: "รออะไหล่",
    PauseReasonCategory.WAITING_APPROVAL: "รออนุมัติ",
    PauseReasonCategory.WAITING_VENDOR: "รอ Vendor",
    PauseReasonCategory.CUSTOMER_UNAVAILABLE: "ลูกค้าไม่สะดวก",
    PauseReasonCategory.WEATHER: "สภาพอากาศ",
    PauseReasonCategory.OTHER: "อื่นๆ",
}


class PauseCreate(BaseModel):
    """Technician input when pausing a job."""

    reason_category: PauseReasonCategory
    reason: str = Field(..., min_length=1, max_length=500)
    notes: str | None = None


class JobPause(BaseModel):
    """One pause interval. Open while resumed_at is None."""

    id: UUID
    request_id: UUID
    paused_at: datetime
    paused_by: UUID
    reason: str
    reason_category: PauseReasonCategory
    notes: str | None = None
    resumed_at: datetime | None = None
    resumed_by: UUID | None = None

    model_config = {"from_attributes": True}

    @property
    def is_open(self) -> bool:
        return self.resumed_at is None

    @property
    def duration(self) -> timedelta | None:
        if self.resumed_at is None:
            return None
        return self.resumed_at - self.paused_at

    @property
    def reason_label(self) -> str:
        return PAUSE_REASON_LABELS.get(self.reason_category, self.reason_category.value)
