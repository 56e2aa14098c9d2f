"""
Domain events for maintenance requests.

Immutable event objects describing state changes that already committed.
Services publish them; handlers (notifications, for now) react without the
publisher knowing who is listening.

Event Categories:
- RequestEvent: request lifecycle (create, assign, complete, cancel)
- JobEvent: technician job control (pause, resume)
- SLAEvent: SLA escalation

Events carry the full domain object so handlers don't need to re-fetch state.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class MaintenanceEvent:
    """Base class for all maintenance domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


# =============================================================================
# REQUEST EVENTS
# =============================================================================


@dataclass(frozen=True)
class RequestEvent(MaintenanceEvent):
    """Events related to the request lifecycle."""
    request: Any = None  # MaintenanceRequest


@dataclass(frozen=True)
class RequestCreated(RequestEvent):
    """A branch filed a new request."""


@dataclass(frozen=True)
class RequestAssigned(RequestEvent):
    """A technician or vendor was assigned."""
    assignee_id: UUID | None = None


@dataclass(frozen=True)
class RequestCompleted(RequestEvent):
    """Work finished; the SLA clock is closed."""
    breached: bool = False


@dataclass(frozen=True)
class RequestCancelled(RequestEvent):
    """Request withdrawn."""


# =============================================================================
# JOB CONTROL EVENTS
# =============================================================================


@dataclass(frozen=True)
class JobEvent(RequestEvent):
    """Events related to pausing and resuming work."""
    pause: Any = None  # JobPause


@dataclass(frozen=True)
class JobPaused(JobEvent):
    """SLA clock suspended."""


@dataclass(frozen=True)
class JobResumed(JobEvent):
    """SLA clock running again; due_at was pushed out."""


# =============================================================================
# SLA EVENTS
# =============================================================================


@dataclass(frozen=True)
class SLAEscalated(RequestEvent):
    """A request crossed into a worse SLA status and an escalation rule matched."""
    previous_status: str | None = None
    new_status: str = ""
    notify_roles: tuple[str, ...] = ()
