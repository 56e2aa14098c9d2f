"""
Branch working-time arithmetic.

A BranchCalendar answers two questions for one branch: "when does N hours of
working time, counted from T, run out?" and "how much working time lies
between A and B?". Only time inside the weekday's opening window counts, and
holidays count as closed all day.

Opening hours are wall-clock times in the branch timezone. All inputs and
outputs are UTC datetimes; local time is used only to find day boundaries.
"""

from datetime import date, datetime, timedelta
from typing import Iterable

from core.models.calendar import Holiday, WorkingHours, MIDNIGHT
from utils.timezone import get_zone, local_instant, to_utc


_ZERO = timedelta(0)


class CalendarExhaustedError(ValueError):
    """No working time within the look-ahead horizon."""


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


class BranchCalendar:
    """
    Weekly opening hours plus holidays for one branch.

    Usage:
        calendar = BranchCalendar(hours, holidays, tz_name="Asia/Bangkok")
        if calendar.is_configured:
            due_at = calendar.add_working_time(created_at, timedelta(hours=4))
    """

    def __init__(
        self,
        working_hours: Iterable[WorkingHours],
        holidays: Iterable[Holiday] = (),
        tz_name: str = "Asia/Bangkok",
        horizon_days: int = 366,
    ):
        self._hours = {wh.day_of_week: wh for wh in working_hours}
        self._holidays = list(holidays)
        self._tz = get_zone(tz_name)
        self.horizon_days = horizon_days

    @property
    def is_configured(self) -> bool:
        """At least one weekday is open."""
        return any(not wh.is_closed and not wh.is_inverted for wh in self._hours.values())

    def is_holiday(self, day: date) -> bool:
        return any(h.covers(day) for h in self._holidays)

    def local_date(self, instant: datetime) -> date:
        return to_utc(instant).astimezone(self._tz).date()

    def open_window(self, day: date) -> tuple[datetime, datetime] | None:
        """UTC [open, close) of the branch on a local calendar day, None when closed."""
        schedule = self._hours.get(day_of_week(day))
        if schedule is None or schedule.is_closed or schedule.is_inverted or self.is_holiday(day):
            return None

        open_at = local_instant(day, schedule.open_time, self._tz)
        if schedule.close_time == MIDNIGHT:
            close_at = local_instant(day + timedelta(days=1), MIDNIGHT, self._tz)
        else:
            close_at = local_instant(day, schedule.close_time, self._tz)
        return open_at, close_at

    def add_working_time(self, start: datetime, duration: timedelta) -> datetime:
        """
        Instant at which `duration` of working time, counted from `start`, is used up.

        A start outside opening hours begins counting at the next opening.

        Raises:
            CalendarExhaustedError: Not enough working time within the horizon
        """
        start = to_utc(start)
        if duration <= _ZERO:
            return start

        remaining = duration
        day = self.local_date(start)
        for _ in range(self.horizon_days + 1):
            window = self.open_window(day)
            if window is not None:
                open_at, close_at = window
                begin = max(start, open_at)
                if begin < close_at:
                    available = close_at - begin
                    if remaining <= available:
                        return begin + remaining
                    remaining -= available
            day += timedelta(days=1)

        raise CalendarExhaustedError(
            f"No {duration} of working time within {self.horizon_days} days of {start.isoformat()}"
        )

    def working_time_between(self, start: datetime, end: datetime) -> timedelta:
        """Working time inside [start, end). Zero when end is not after start."""
        start, end = to_utc(start), to_utc(end)
        if end <= start:
            return _ZERO

        total = _ZERO
        day = self.local_date(start)
        last_day = self.local_date(end)
        while day <= last_day:
            window = self.open_window(day)
            if window is not None:
                begin = max(start, window[0])
                finish = min(end, window[1])
                if begin < finish:
                    total += finish - begin
            day += timedelta(days=1)
        return total
