"""Branch opening hours and holiday models."""

from datetime import date, time
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

MIDNIGHT = time(0, 0)


class WorkingHours(BaseModel):
    """
    Opening hours of a branch for one weekday.

    day_of_week: 0 = Sunday ... 6 = Saturday.
    A close_time of 00:00 (or "24:00") on an open day means the branch closes
    at the end of the day, so 00:00-00:00 is open around the clock.
    """

    branch_id: UUID | None = None
    day_of_week: int = Field(..., ge=0, le=6)
    open_time: time
    close_time: time
    is_closed: bool = False

    model_config = {"from_attributes": True}

    @field_validator("open_time", "close_time", mode="before")
    @classmethod
    def _end_of_day_alias(cls, v):
        if isinstance(v, str) and v.strip().startswith("24:00"):
            return MIDNIGHT
        return v

    @property
    def closes_at_midnight(self) -> bool:
        return self.close_time == MIDNIGHT

    @property
    def is_inverted(self) -> bool:
        """Open day whose close_time is not after open_time (e.g. an overnight 22:00-06:00 row)."""
        return not self.is_closed and not self.closes_at_midnight and self.close_time <= self.open_time


class WorkingHoursSet(BaseModel):
    """Admin input replacing a branch's weekly schedule."""

    branch_id: UUID
    days: list[WorkingHours] = Field(..., min_length=1, max_length=7)

    @model_validator(mode="after")
    def _valid_days(self) -> "WorkingHoursSet":
        seen = [d.day_of_week for d in self.days]
        if len(seen) != len(set(seen)):
            raise ValueError("day_of_week values must be unique")
        for day in self.days:
            if day.is_inverted:
                raise ValueError(
                    f"close_time {day.close_time} must be after open_time {day.open_time}"
                )
        return self


class HolidayCreate(BaseModel):
    date: date
    name: str = Field(..., min_length=1, max_length=200)
    branch_id: UUID | None = None
    is_recurring: bool = False


class Holiday(BaseModel):
    """A non-working day, for one branch or (branch_id None) the whole organization."""

    id: UUID | None = None
    date: date
    name: str = ""
    branch_id: UUID | None = None
    is_recurring: bool = False

    model_config = {"from_attributes": True}

    def covers(self, day: date) -> bool:
        if self.is_recurring:
            return (self.date.month, self.date.day) == (day.month, day.day)
        return self.date == day
