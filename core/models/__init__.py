"""Core domain models."""

from core.models.request import (
    MaintenanceRequest, RequestCreate, RequestStatus, Priority, SLAMode, CLOSED_STATUSES,
)
from core.models.pause import JobPause, PauseCreate, PauseReasonCategory, PAUSE_REASON_LABELS
from core.models.calendar import WorkingHours, WorkingHoursSet, Holiday, HolidayCreate
from core.models.technician import (
    AssignmentCandidate, AssignmentOutcome, AssignmentResult, AssignmentRule,
    AssignmentStrategy, CandidateFactors, TechnicianSeed, TechnicianSkill,
    STRATEGY_LABELS, SKILL_LEVEL_LABELS,
)
from core.models.sla import (
    SLAStatus, SLAInfo, SLAProgress, EscalationRule, EscalationResult, EscalationSummary,
    SLA_STATUS_LABELS,
)

__all__ = [
    # Request
    "MaintenanceRequest", "RequestCreate", "RequestStatus", "Priority", "SLAMode",
    "CLOSED_STATUSES",
    # Pause
    "JobPause", "PauseCreate", "PauseReasonCategory", "PAUSE_REASON_LABELS",
    # Calendar
    "WorkingHours", "WorkingHoursSet", "Holiday", "HolidayCreate",
    # Technician / assignment
    "AssignmentCandidate", "AssignmentOutcome", "AssignmentResult", "AssignmentRule",
    "AssignmentStrategy", "CandidateFactors", "TechnicianSeed", "TechnicianSkill",
    "STRATEGY_LABELS", "SKILL_LEVEL_LABELS",
    # SLA
    "SLAStatus", "SLAInfo", "SLAProgress", "EscalationRule", "EscalationResult",
    "EscalationSummary", "SLA_STATUS_LABELS",
]
