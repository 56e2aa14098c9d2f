"""
Service wiring.

Builds every service over one PostgresClient and subscribes the notification
handlers to the event bus. The returned dict is what the API routers take.
"""

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger
from core.config import MaintenanceConfig
from core.event_bus import EventBus
from core.events import JobPaused, JobResumed, RequestAssigned, SLAEscalated
from core.handlers.assignment_handler import handle_request_assigned
from core.handlers.job_control_handler import handle_job_paused, handle_job_resumed
from core.handlers.sla_escalation_handler import handle_sla_escalated
from core.services.assignment_service import AssignmentService
from core.services.calendar_service import CalendarService
from core.services.escalation_service import EscalationService
from core.services.job_control_service import JobControlService
from core.services.notification_service import NotificationService
from core.services.request_service import RequestService
from core.services.roster_service import RosterService


def wire_handlers(event_bus: EventBus, notification_service: NotificationService) -> None:
    event_bus.subscribe(RequestAssigned, handle_request_assigned(notification_service))
    event_bus.subscribe(JobPaused, handle_job_paused(notification_service))
    event_bus.subscribe(JobResumed, handle_job_resumed(notification_service))
    event_bus.subscribe(SLAEscalated, handle_sla_escalated(notification_service))


def build_services(
    postgres: PostgresClient,
    config: MaintenanceConfig | None = None,
    event_bus: EventBus | None = None,
) -> dict:
    config = config or MaintenanceConfig()
    event_bus = event_bus or EventBus()
    audit = AuditLogger(postgres)

    notification_service = NotificationService(postgres)
    calendar_service = CalendarService(postgres, audit, config)
    roster_service = RosterService(postgres, config)
    request_service = RequestService(postgres, audit, event_bus, calendar_service, config)

    wire_handlers(event_bus, notification_service)

    return {
        "event_bus": event_bus,
        "request": request_service,
        "job_control": JobControlService(postgres, audit, event_bus, request_service),
        "assignment": AssignmentService(
            postgres, audit, event_bus, request_service, roster_service, config
        ),
        "calendar": calendar_service,
        "roster": roster_service,
        "escalation": EscalationService(postgres, event_bus, request_service),
        "notification": notification_service,
    }
