"""
SLA engine: due times, pause accounting and status classification.

Everything here is a pure function of its arguments. `now` is always passed
in; nothing reads the wall clock.

Classification uses the effective clock of a request: elapsed time stops at
the start of an open pause, and closed pause time is removed from both the
elapsed time and the SLA budget. For a request that was never paused this is
exactly (now - created_at) / (due_at - created_at).
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from core.exceptions import InvalidTransitionError
from core.models.request import CLOSED_STATUSES, MaintenanceRequest, RequestStatus, SLAMode
from core.models.sla import SLAInfo, SLAProgress, SLAStatus
from core.working_hours import BranchCalendar, CalendarExhaustedError

logger = logging.getLogger(__name__)

WARNING_THRESHOLD = 0.75
CRITICAL_THRESHOLD = 0.90
BREACH_THRESHOLD = 1.0

# Severity order for escalation; COMPLETED and NO_SLA are outside it.
SEVERITY_ORDER = (SLAStatus.ON_TRACK, SLAStatus.WARNING, SLAStatus.CRITICAL, SLAStatus.BREACHED)

ESCALATION_THRESHOLDS = {
    SLAStatus.WARNING: 75,
    SLAStatus.CRITICAL: 90,
    SLAStatus.BREACHED: 100,
}

_ZERO = timedelta(0)


def compute_due_at(
    created_at: datetime,
    sla_hours: float,
    sla_mode: SLAMode,
    calendar: BranchCalendar | None = None,
) -> datetime:
    """
    Deadline for a request.

    CALENDAR mode adds sla_hours of wall time. WORKING_HOURS mode counts only
    the branch's opening hours outside holidays. A branch without opening
    hours (or whose calendar runs out of working time) falls back to
    CALENDAR semantics, with a warning.
    """
    duration = timedelta(hours=sla_hours)

    if sla_mode == SLAMode.CALENDAR:
        return created_at + duration

    if calendar is None or not calendar.is_configured:
        logger.warning(
            "Working-hours SLA requested but branch has no opening hours; "
            "counting calendar time instead"
        )
        return created_at + duration

    try:
        return calendar.add_working_time(created_at, duration)
    except CalendarExhaustedError as e:
        logger.warning(f"{e}; counting calendar time instead")
        return created_at + duration


def classify_fraction(fraction: float) -> SLAStatus:
    """Map an elapsed fraction to the severity scale. Cut-overs are inclusive below."""
    if fraction >= BREACH_THRESHOLD:
        return SLAStatus.BREACHED
    if fraction >= CRITICAL_THRESHOLD:
        return SLAStatus.CRITICAL
    if fraction >= WARNING_THRESHOLD:
        return SLAStatus.WARNING
    return SLAStatus.ON_TRACK


def effective_now(now: datetime, paused_at: datetime | None) -> datetime:
    """The SLA clock stands still while a pause is open."""
    if paused_at is not None and paused_at < now:
        return paused_at
    return now


def elapsed_fraction(
    created_at: datetime,
    due_at: datetime,
    now: datetime,
    paused_total: timedelta = _ZERO,
    paused_at: datetime | None = None,
) -> float:
    """
    Share of the SLA budget used up, clamped to [0, inf).

    A non-positive budget counts as fully used.
    """
    budget = (due_at - created_at) - paused_total
    if budget <= _ZERO:
        return BREACH_THRESHOLD

    elapsed = (effective_now(now, paused_at) - created_at) - paused_total
    return max(0.0, elapsed / budget)


def classify(
    created_at: datetime | None,
    due_at: datetime | None,
    status: RequestStatus,
    now: datetime,
    paused_total: timedelta = _ZERO,
    paused_at: datetime | None = None,
) -> SLAStatus:
    if status in CLOSED_STATUSES:
        return SLAStatus.COMPLETED
    if created_at is None or due_at is None:
        return SLAStatus.NO_SLA
    return classify_fraction(elapsed_fraction(created_at, due_at, now, paused_total, paused_at))


def classify_request(request: MaintenanceRequest, now: datetime) -> SLAStatus:
    return classify(
        request.created_at,
        request.due_at,
        request.status,
        now,
        request.paused_duration,
        request.sla_paused_at if request.is_paused else None,
    )


def evaluate(request: MaintenanceRequest, now: datetime) -> SLAInfo:
    """Full SLA picture for one request at `now`."""
    status = classify_request(request, now)

    if status in (SLAStatus.COMPLETED, SLAStatus.NO_SLA):
        return SLAInfo(
            status=status,
            elapsed_fraction=0.0,
            due_at=request.due_at,
            time_remaining=_ZERO,
            is_overdue=False,
            formatted_time_remaining="-",
        )

    paused_at = request.sla_paused_at if request.is_paused else None
    fraction = elapsed_fraction(
        request.created_at, request.due_at, now, request.paused_duration, paused_at
    )
    remaining = request.due_at - effective_now(now, paused_at)

    return SLAInfo(
        status=status,
        elapsed_fraction=fraction,
        due_at=request.due_at,
        time_remaining=remaining,
        is_overdue=remaining < _ZERO,
        formatted_time_remaining=format_time_remaining(remaining),
    )


@dataclass(frozen=True)
class SLAClock:
    """
    Timing state of one request across pause/resume cycles.

    Invariant: due_at == original due time + paused_total once no pause is
    open. due_at never decreases.
    """

    created_at: datetime
    due_at: datetime | None
    paused_total: timedelta = _ZERO
    paused_at: datetime | None = None

    @classmethod
    def from_request(cls, request: MaintenanceRequest) -> "SLAClock":
        return cls(
            created_at=request.created_at,
            due_at=request.due_at,
            paused_total=request.paused_duration,
            paused_at=request.sla_paused_at if request.is_paused else None,
        )

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None

    def pause(self, now: datetime) -> "SLAClock":
        if self.is_paused:
            raise InvalidTransitionError("Request is already paused", state="paused", action="pause")
        return replace(self, paused_at=now)

    def resume(self, now: datetime) -> "SLAClock":
        """Close the open pause and push the deadline out by its length."""
        if not self.is_paused:
            raise InvalidTransitionError("Request is not paused", action="resume")

        paused_for = max(_ZERO, now - self.paused_at)
        due_at = self.due_at + paused_for if self.due_at is not None else None
        return replace(
            self,
            due_at=due_at,
            paused_total=self.paused_total + paused_for,
            paused_at=None,
        )

    def elapsed_fraction(self, now: datetime) -> float:
        if self.due_at is None:
            return 0.0
        return elapsed_fraction(self.created_at, self.due_at, now, self.paused_total, self.paused_at)

    def status(self, request_status: RequestStatus, now: datetime) -> SLAStatus:
        return classify(
            self.created_at, self.due_at, request_status, now, self.paused_total, self.paused_at
        )


def working_hours_progress(
    calendar: BranchCalendar,
    created_at: datetime,
    due_at: datetime,
    now: datetime,
    paused_total: timedelta = _ZERO,
) -> SLAProgress:
    """Progress measured in branch working time rather than wall time."""
    total = calendar.working_time_between(created_at, due_at)
    elapsed = max(_ZERO, calendar.working_time_between(created_at, now) - paused_total)
    percentage = (elapsed / total) * 100 if total > _ZERO else 0.0

    return SLAProgress(
        elapsed=elapsed,
        total=total,
        remaining=max(_ZERO, total - elapsed),
        percentage=min(100.0, max(0.0, percentage)),
    )


def should_escalate(previous: SLAStatus | None, new: SLAStatus) -> bool:
    """Escalate when entering warning/critical/breached, or moving to a worse one."""
    if new not in ESCALATION_THRESHOLDS:
        return False
    if previous not in SEVERITY_ORDER:
        return True
    return SEVERITY_ORDER.index(new) > SEVERITY_ORDER.index(previous)


def format_time_remaining(remaining: timedelta) -> str:
    """Thai countdown text, e.g. '2 วัน 3 ชม.' or 'เกิน 45 นาที'."""
    overdue = remaining < _ZERO
    total_minutes = int(abs(remaining).total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    prefix = "เกิน " if overdue else ""

    if hours > 24:
        days, rest = divmod(hours, 24)
        return f"{prefix}{days} วัน {rest} ชม."
    if hours > 0:
        return f"{prefix}{hours} ชม. {minutes} นาที"
    return f"{prefix}{minutes} นาที"
