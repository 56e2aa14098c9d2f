"""
Maintenance request service.

Creates requests with their SLA deadline and drives the non-pause lifecycle
transitions: start, submit for review, complete, cancel. Every transition is
checked against the lifecycle state machine first and then written with the
expected pre-state in the WHERE clause, so a concurrent change makes the
write miss instead of overwriting it.
"""

import logging
from datetime import datetime
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient, Transaction
from core import sla
from core.audit import AuditAction, AuditLogger, compute_changes
from core.config import MaintenanceConfig
from core.event_bus import EventBus
from core.events import RequestCancelled, RequestCompleted, RequestCreated
from core.exceptions import InvalidTransitionError, RequestNotFoundError
from core.lifecycle import JobAction, transition
from core.models import (
    MaintenanceRequest, RequestCreate, RequestStatus, SLAInfo, SLAMode, SLAProgress, SLAStatus,
)
from core.services.calendar_service import CalendarService
from utils.actor_context import get_current_actor
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (
    RequestStatus.PENDING.value,
    RequestStatus.ASSIGNED.value,
    RequestStatus.IN_PROGRESS.value,
)


class RequestService:
    """Service for maintenance request operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        event_bus: EventBus,
        calendar_service: CalendarService,
        config: MaintenanceConfig,
    ):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus
        self.calendar_service = calendar_service
        self.config = config

    def create(self, data: RequestCreate) -> MaintenanceRequest:
        """
        File a new request in PENDING status with its SLA deadline computed.

        sla_hours defaults by priority when not given.
        """
        actor = get_current_actor()
        now = now_utc()
        sla_hours = data.sla_hours or self.config.sla_hours_for(data.priority)

        calendar = None
        if data.sla_mode == SLAMode.WORKING_HOURS:
            calendar = self.calendar_service.build_calendar(data.branch_id, now)
        due_at = sla.compute_due_at(now, sla_hours, data.sla_mode, calendar)

        row = self.postgres.execute_returning(
            """
            INSERT INTO maintenance_requests (
                id, organization_id, branch_id, created_by,
                title, description, category, equipment_id, priority,
                status, sla_hours, sla_mode, due_at, sla_status,
                is_paused, sla_paused_seconds, pause_count,
                created_at, updated_at
            ) VALUES (
                %s, %s, %s, %s,
                %s, %s, %s, %s, %s,
                %s, %s, %s, %s, %s,
                false, 0, 0,
                %s, %s
            )
            RETURNING *
            """,
            (
                uuid4(), actor.organization_id, data.branch_id, actor.user_id,
                data.title, data.description, data.category, data.equipment_id, data.priority.value,
                RequestStatus.PENDING.value, sla_hours, data.sla_mode.value, due_at,
                SLAStatus.ON_TRACK.value,
                now, now
            )
        )[0]

        request = MaintenanceRequest.model_validate(row)

        self.audit.log_change(
            entity_type="maintenance_request",
            entity_id=request.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)}
        )
        self.event_bus.publish(RequestCreated(request=request))

        return request

    def get_by_id(self, request_id: UUID) -> MaintenanceRequest | None:
        row = self.postgres.execute_single(
            "SELECT * FROM maintenance_requests WHERE id = %s",
            (request_id,)
        )
        if row is None:
            return None
        return MaintenanceRequest.model_validate(row)

    def require(self, request_id: UUID) -> MaintenanceRequest:
        request = self.get_by_id(request_id)
        if request is None:
            raise RequestNotFoundError(request_id)
        return request

    def get_sla(self, request_id: UUID, now: datetime | None = None) -> SLAInfo:
        """SLA status, elapsed fraction and countdown for one request."""
        return sla.evaluate(self.require(request_id), now or now_utc())

    def get_working_hours_progress(
        self, request_id: UUID, now: datetime | None = None
    ) -> SLAProgress | None:
        """Working-time progress; None for calendar-mode requests or without a due time."""
        request = self.require(request_id)
        if request.sla_mode != SLAMode.WORKING_HOURS or request.due_at is None:
            return None

        calendar = self.calendar_service.build_calendar(request.branch_id, request.created_at)
        return sla.working_hours_progress(
            calendar, request.created_at, request.due_at, now or now_utc(), request.paused_duration
        )

    def list_active(self, limit: int = 500) -> list[MaintenanceRequest]:
        """Open requests that carry a deadline, earliest due first."""
        rows = self.postgres.execute(
            """
            SELECT * FROM maintenance_requests
            WHERE status = ANY(%s) AND due_at IS NOT NULL
            ORDER BY due_at ASC
            LIMIT %s
            """,
            (list(ACTIVE_STATUSES), limit)
        )
        return [MaintenanceRequest.model_validate(row) for row in rows]

    def start(self, request_id: UUID) -> MaintenanceRequest:
        """Technician begins (or, from review, resumes) the work."""
        return self._apply(request_id, JobAction.START)

    def submit_review(self, request_id: UUID) -> MaintenanceRequest:
        return self._apply(request_id, JobAction.SUBMIT_REVIEW)

    def complete(self, request_id: UUID) -> MaintenanceRequest:
        """
        Close the request, record the SLA outcome and free the technician slot.
        """
        now = now_utc()
        current = self.require(request_id)
        breached = sla.classify_request(current, now) == SLAStatus.BREACHED

        def finish(tx: Transaction, updated: MaintenanceRequest) -> None:
            tx.execute(
                """
                INSERT INTO sla_logs (id, request_id, started_at, resolved_at, breached)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (uuid4(), updated.id, updated.created_at, now, breached)
            )
            self._release_technician(tx, updated)

        updated = self._apply(
            request_id, JobAction.COMPLETE, current=current, now=now,
            extra={"completed_at": now, "sla_status": SLAStatus.COMPLETED.value},
            after=finish,
        )
        self.event_bus.publish(RequestCompleted(request=updated, breached=breached))
        return updated

    def cancel(self, request_id: UUID) -> MaintenanceRequest:
        """Withdraw a request. An open pause is closed with it."""
        now = now_utc()

        def close_out(tx: Transaction, updated: MaintenanceRequest) -> None:
            tx.execute(
                """
                UPDATE job_pauses SET resumed_at = %s, resumed_by = %s
                WHERE request_id = %s AND resumed_at IS NULL
                """,
                (now, get_current_actor().user_id, updated.id)
            )
            self._release_technician(tx, updated)

        updated = self._apply(
            request_id, JobAction.CANCEL, now=now,
            extra={"sla_paused_at": None, "sla_status": SLAStatus.COMPLETED.value},
            after=close_out,
        )
        self.event_bus.publish(RequestCancelled(request=updated))
        return updated

    def _release_technician(self, tx: Transaction, request: MaintenanceRequest) -> None:
        if request.assigned_user_id is None:
            return
        tx.execute(
            """
            UPDATE profiles
            SET current_workload = GREATEST(COALESCE(current_workload, 0) - 1, 0)
            WHERE id = %s
            """,
            (request.assigned_user_id,)
        )

    def _apply(
        self,
        request_id: UUID,
        action: JobAction,
        current: MaintenanceRequest | None = None,
        now: datetime | None = None,
        extra: dict | None = None,
        after=None,
    ) -> MaintenanceRequest:
        """
        Run one state-machine transition as a guarded UPDATE.

        Raises:
            RequestNotFoundError: If the request doesn't exist
            InvalidTransitionError: If the action isn't allowed, or the
                request changed state between read and write
        """
        current = current or self.require(request_id)
        now = now or now_utc()
        new_status, new_paused = transition(current.status, current.is_paused, action)

        updates = {"status": new_status.value, "is_paused": new_paused, "updated_at": now}
        updates.update(extra or {})
        set_clause = ", ".join(f"{column} = %s" for column in updates)

        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                f"""
                UPDATE maintenance_requests
                SET {set_clause}
                WHERE id = %s AND status = %s AND is_paused = %s
                RETURNING *
                """,
                (*updates.values(), request_id, current.status.value, current.is_paused)
            )
            if row is None:
                raise InvalidTransitionError(
                    f"Request {request_id} changed state concurrently; {action.value} not applied",
                    action=action.value,
                )

            updated = MaintenanceRequest.model_validate(row)
            if after is not None:
                after(tx, updated)

            self.audit.log_change(
                entity_type="maintenance_request",
                entity_id=request_id,
                action=AuditAction.TRANSITION,
                changes=compute_changes(
                    current.model_dump(mode="json"), updated.model_dump(mode="json")
                ),
                tx=tx,
            )

        logger.info(f"Request {request_id}: {action.value} ({current.status.value} -> {new_status.value})")
        return updated
