"""
Technician recommendation and assignment.

recommend() is read-only: it snapshots the roster and ranks it with the
assignment engine. assign() is the committing step and re-checks everything
it relies on inside one transaction with conditional UPDATEs. The first
writer wins; a loser gets a failed AssignmentOutcome and nothing changes.
"""

import logging
from datetime import datetime
from uuid import UUID

from clients.postgres_client import PostgresClient, Transaction
from core import assignment
from core.audit import AuditAction, AuditLogger, compute_changes
from core.config import MaintenanceConfig
from core.event_bus import EventBus
from core.events import RequestAssigned
from core.exceptions import AlreadyAssignedError, MaintenanceError, TechnicianNotEligibleError
from core.lifecycle import JobAction, transition
from core.models import (
    AssignmentOutcome, AssignmentResult, AssignmentRule, AssignmentStrategy,
    MaintenanceRequest, RequestStatus,
)
from core.services.request_service import RequestService
from core.services.roster_service import RosterService
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class AssignmentService:
    """Service for assigning requests to technicians and vendors."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        event_bus: EventBus,
        request_service: RequestService,
        roster_service: RosterService,
        config: MaintenanceConfig,
    ):
        self.postgres = postgres
        self.audit = audit
        self.event_bus = event_bus
        self.request_service = request_service
        self.roster_service = roster_service
        self.config = config

    def list_rules(self) -> list[AssignmentRule]:
        rows = self.postgres.execute(
            """
            SELECT id, name, conditions, assignment_strategy, target_technician_id,
                   COALESCE(priority, 0) AS priority, is_active
            FROM assignment_rules
            WHERE is_active = true
            ORDER BY priority DESC
            """
        )
        return [AssignmentRule.model_validate(row) for row in rows]

    def recommend(
        self,
        request_id: UUID,
        strategy: AssignmentStrategy | None = None,
        now: datetime | None = None,
    ) -> AssignmentResult:
        """
        Ranked candidates for a request.

        An explicit strategy wins. Otherwise the first matching assignment
        rule decides; a manual rule naming an eligible technician yields just
        that technician. With no matching rule the configured default applies.
        """
        now = now or now_utc()
        request = self.request_service.require(request_id)
        roster = self.roster_service.list_technicians(request.branch_id, now.date())

        if strategy is None:
            rule = assignment.select_rule(self.list_rules(), request.category, request.priority)
            if rule is not None:
                pinned = self._pinned(rule, roster, request)
                if pinned is not None:
                    return pinned
                strategy = rule.assignment_strategy
            strategy = strategy or self.config.default_strategy

        if strategy == AssignmentStrategy.MANUAL:
            strategy = self.config.default_strategy

        result = assignment.recommend(roster, request.category, request.branch_id, strategy)
        logger.debug(
            f"Request {request_id}: {len(result.candidates)} candidates via {strategy.value}"
        )
        return result

    def _pinned(self, rule: AssignmentRule, roster, request: MaintenanceRequest) -> AssignmentResult | None:
        if rule.target_technician_id is None:
            return None
        for seed in roster:
            if seed.profile_id == rule.target_technician_id:
                if assignment.is_eligible(seed, request.branch_id):
                    return assignment.pinned_result(seed)
                logger.info(
                    f"Rule '{rule.name}' targets technician {seed.profile_id}, "
                    "who is not eligible; ranking instead"
                )
                return None
        return None

    def assign(self, request_id: UUID, profile_id: UUID, now: datetime | None = None) -> AssignmentOutcome:
        """
        Assign a technician, re-checking eligibility at commit time.

        Never raises for domain rejections; they come back as
        AssignmentOutcome(success=False, error=..., code=...).
        """
        now = now or now_utc()
        try:
            current = self._assignable(request_id)

            seed = self.roster_service.get_technician(profile_id, now.date())
            if seed is None:
                raise TechnicianNotEligibleError(profile_id, "is not a technician")
            reason = assignment.ineligibility_reason(seed, current.branch_id)
            if reason is not None:
                raise TechnicianNotEligibleError(profile_id, reason)

            with self.postgres.transaction() as tx:
                updated = self._claim(tx, request_id, now, user_id=profile_id)

                claimed = tx.execute_single(
                    """
                    UPDATE profiles
                    SET current_workload = COALESCE(current_workload, 0) + 1,
                        last_assigned_at = %s
                    WHERE id = %s
                      AND COALESCE(is_active, true)
                      AND COALESCE(current_workload, 0) < COALESCE(max_workload, %s)
                      AND (branch_id IS NULL OR branch_id = %s)
                    RETURNING id
                    """,
                    (now, profile_id, self.config.default_max_workload, current.branch_id)
                )
                if claimed is None:
                    raise TechnicianNotEligibleError(profile_id)

                self._audit(tx, current, updated)

        except MaintenanceError as e:
            logger.info(f"Assignment of {request_id} to {profile_id} rejected: {e}")
            return AssignmentOutcome(
                success=False, error=str(e), code=e.code,
                request_id=request_id, profile_id=profile_id,
            )

        logger.info(f"Request {request_id} assigned to technician {profile_id}")
        self.event_bus.publish(RequestAssigned(request=updated, assignee_id=profile_id))
        return AssignmentOutcome(success=True, request_id=request_id, profile_id=profile_id)

    def assign_vendor(self, request_id: UUID, vendor_id: UUID, now: datetime | None = None) -> AssignmentOutcome:
        """Hand the request to an external vendor instead of a technician."""
        now = now or now_utc()
        try:
            current = self._assignable(request_id)

            with self.postgres.transaction() as tx:
                updated = self._claim(tx, request_id, now, vendor_id=vendor_id)
                self._audit(tx, current, updated)

        except MaintenanceError as e:
            logger.info(f"Vendor assignment of {request_id} rejected: {e}")
            return AssignmentOutcome(
                success=False, error=str(e), code=e.code, request_id=request_id,
            )

        logger.info(f"Request {request_id} assigned to vendor {vendor_id}")
        self.event_bus.publish(RequestAssigned(request=updated, assignee_id=vendor_id))
        return AssignmentOutcome(success=True, request_id=request_id)

    def _assignable(self, request_id: UUID) -> MaintenanceRequest:
        current = self.request_service.require(request_id)
        if current.is_assigned:
            raise AlreadyAssignedError(request_id)
        transition(current.status, current.is_paused, JobAction.ASSIGN)
        return current

    def _claim(
        self,
        tx: Transaction,
        request_id: UUID,
        now: datetime,
        user_id: UUID | None = None,
        vendor_id: UUID | None = None,
    ) -> MaintenanceRequest:
        row = tx.execute_single(
            """
            UPDATE maintenance_requests
            SET assigned_user_id = %s,
                assigned_vendor_id = %s,
                status = %s,
                assigned_at = %s,
                updated_at = %s
            WHERE id = %s
              AND status = %s
              AND assigned_user_id IS NULL
              AND assigned_vendor_id IS NULL
            RETURNING *
            """,
            (
                user_id, vendor_id, RequestStatus.ASSIGNED.value, now, now,
                request_id, RequestStatus.PENDING.value
            )
        )
        if row is None:
            raise AlreadyAssignedError(request_id)
        return MaintenanceRequest.model_validate(row)

    def _audit(self, tx: Transaction, current: MaintenanceRequest, updated: MaintenanceRequest) -> None:
        self.audit.log_change(
            entity_type="maintenance_request",
            entity_id=updated.id,
            action=AuditAction.UPDATE,
            changes=compute_changes(
                current.model_dump(mode="json"), updated.model_dump(mode="json")
            ),
            tx=tx,
        )
