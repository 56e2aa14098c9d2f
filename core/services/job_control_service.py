"""
Technician job control: pausing and resuming the SLA clock.

A pause opens a job_pauses row and freezes the countdown. Resuming closes the
row and pushes due_at out by exactly the paused interval, so the request has
the same SLA status immediately after resume as it had when it was paused.
"""

import logging
from datetime import datetime
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditAction, AuditLogger, compute_changes
from core.event_bus import EventBus
from core.events import JobPaused, JobResumed
from core.exceptions import InvalidTransitionError
from core.lifecycle import JobAction, transition
from core.models import JobPause, MaintenanceRequest, PauseCreate
from core.services.request_service import RequestService
from core.sla import SLAClock
from utils.actor_context import get_current_actor
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class JobControlService:
    """Service for pause/resume of maintenance work."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        event_bus: EventBus,
        request_service: RequestService,
    ):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus
        self.request_service = request_service

    def pause(self, request_id: UUID, data: PauseCreate, now: datetime | None = None) -> JobPause:
        """
        Suspend the SLA clock.

        Raises:
            RequestNotFoundError: If the request doesn't exist
            InvalidTransitionError: If already paused, not yet assigned, or closed
        """
        now = now or now_utc()
        actor = get_current_actor()
        current = self.request_service.require(request_id)
        transition(current.status, current.is_paused, JobAction.PAUSE)

        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                """
                UPDATE maintenance_requests
                SET is_paused = true,
                    sla_paused_at = %s,
                    pause_count = COALESCE(pause_count, 0) + 1,
                    updated_at = %s
                WHERE id = %s AND status = %s AND is_paused = false
                RETURNING *
                """,
                (now, now, request_id, current.status.value)
            )
            if row is None:
                raise InvalidTransitionError(
                    f"Request {request_id} is already paused", state="paused", action="pause"
                )
            updated = MaintenanceRequest.model_validate(row)

            pause_row = tx.execute_single(
                """
                INSERT INTO job_pauses
                    (id, request_id, paused_at, paused_by, reason, reason_category, notes)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    uuid4(), request_id, now, actor.user_id,
                    data.reason, data.reason_category.value, data.notes
                )
            )
            pause = JobPause.model_validate(pause_row)

            self.audit.log_change(
                entity_type="maintenance_request",
                entity_id=request_id,
                action=AuditAction.TRANSITION,
                changes={
                    **compute_changes(current.model_dump(mode="json"), updated.model_dump(mode="json")),
                    "pause": {"old": None, "new": pause.model_dump(mode="json")},
                },
                tx=tx,
            )

        logger.info(f"Request {request_id} paused ({data.reason_category.value})")
        self.event_bus.publish(JobPaused(request=updated, pause=pause))
        return pause

    def resume(self, request_id: UUID, notes: str | None = None, now: datetime | None = None) -> JobPause:
        """
        Restart the SLA clock and extend due_at by the paused interval.

        Raises:
            RequestNotFoundError: If the request doesn't exist
            InvalidTransitionError: If the request isn't paused
        """
        now = now or now_utc()
        actor = get_current_actor()
        current = self.request_service.require(request_id)
        transition(current.status, current.is_paused, JobAction.RESUME)

        clock = SLAClock.from_request(current).resume(now)
        paused_for = clock.paused_total - current.paused_duration

        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                """
                UPDATE maintenance_requests
                SET is_paused = false,
                    sla_paused_at = NULL,
                    due_at = %s,
                    sla_paused_seconds = %s,
                    updated_at = %s
                WHERE id = %s AND status = %s AND is_paused = true
                  AND sla_paused_at = %s
                RETURNING *
                """,
                (
                    clock.due_at, int(clock.paused_total.total_seconds()), now,
                    request_id, current.status.value, current.sla_paused_at
                )
            )
            if row is None:
                raise InvalidTransitionError(
                    f"Request {request_id} is not paused", action="resume"
                )
            updated = MaintenanceRequest.model_validate(row)

            pause_row = tx.execute_single(
                """
                UPDATE job_pauses
                SET resumed_at = %s,
                    resumed_by = %s,
                    notes = COALESCE(%s, notes)
                WHERE request_id = %s AND resumed_at IS NULL
                RETURNING *
                """,
                (now, actor.user_id, notes, request_id)
            )
            if pause_row is None:
                raise InvalidTransitionError(
                    f"Request {request_id} has no open pause", action="resume"
                )
            pause = JobPause.model_validate(pause_row)

            self.audit.log_change(
                entity_type="maintenance_request",
                entity_id=request_id,
                action=AuditAction.TRANSITION,
                changes=compute_changes(
                    current.model_dump(mode="json"), updated.model_dump(mode="json")
                ),
                tx=tx,
            )

        logger.info(
            f"Request {request_id} resumed after {paused_for}; due_at now {updated.due_at}"
        )
        self.event_bus.publish(JobResumed(request=updated, pause=pause))
        return pause

    def get_open_pause(self, request_id: UUID) -> JobPause | None:
        row = self.postgres.execute_single(
            """
            SELECT * FROM job_pauses
            WHERE request_id = %s AND resumed_at IS NULL
            ORDER BY paused_at DESC
            LIMIT 1
            """,
            (request_id,)
        )
        return JobPause.model_validate(row) if row else None

    def get_pause_history(self, request_id: UUID) -> list[JobPause]:
        """All pauses of a request, oldest first."""
        rows = self.postgres.execute(
            "SELECT * FROM job_pauses WHERE request_id = %s ORDER BY paused_at ASC",
            (request_id,)
        )
        return [JobPause.model_validate(row) for row in rows]
