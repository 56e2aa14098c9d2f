"""
SLA monitoring and escalation.

Recomputes each active request's SLA status, persists changes to
maintenance_requests.sla_status, and publishes SLAEscalated when a request
enters or worsens within warning -> critical -> breached and an active
escalation rule exists for that threshold. Meant to be run periodically.
"""

import logging
from datetime import datetime

from clients.postgres_client import PostgresClient
from core import sla
from core.event_bus import EventBus
from core.events import SLAEscalated
from core.models import (
    EscalationResult, EscalationRule, EscalationSummary, MaintenanceRequest, SLAStatus,
)
from core.services.request_service import RequestService
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class EscalationService:

    def __init__(self, postgres: PostgresClient, event_bus: EventBus, request_service: RequestService):
        self.postgres = postgres
        self.event_bus = event_bus
        self.request_service = request_service

    def list_rules(self) -> list[EscalationRule]:
        rows = self.postgres.execute(
            """
            SELECT id, name, threshold_percent, COALESCE(notify_roles, '{}') AS notify_roles,
                   COALESCE(action_type, 'notify') AS action_type, is_active
            FROM escalation_rules
            WHERE is_active = true
            ORDER BY threshold_percent ASC
            """
        )
        return [EscalationRule.model_validate(row) for row in rows]

    @staticmethod
    def match_rule(rules: list[EscalationRule], status: SLAStatus) -> EscalationRule | None:
        threshold = sla.ESCALATION_THRESHOLDS.get(status)
        if threshold is None:
            return None
        return next((r for r in rules if r.threshold_percent == threshold), None)

    def check_and_escalate(
        self,
        request: MaintenanceRequest,
        now: datetime | None = None,
        rules: list[EscalationRule] | None = None,
    ) -> EscalationResult:
        now = now or now_utc()
        new_status = sla.classify_request(request, now)
        previous = SLAStatus(request.sla_status) if request.sla_status else None

        result = EscalationResult(
            request_id=request.id, previous_status=previous, new_status=new_status
        )
        if new_status == previous:
            return result

        self.postgres.execute(
            "UPDATE maintenance_requests SET sla_status = %s WHERE id = %s AND status = %s",
            (new_status.value, request.id, request.status.value)
        )

        if not sla.should_escalate(previous, new_status):
            return result

        rule = self.match_rule(rules if rules is not None else self.list_rules(), new_status)
        if rule is None:
            logger.debug(f"Request {request.id} is {new_status.value} but no escalation rule matches")
            return result

        logger.warning(
            f"Request {request.id} SLA escalated: "
            f"{previous.value if previous else 'none'} -> {new_status.value}"
        )
        self.event_bus.publish(SLAEscalated(
            request=request,
            previous_status=previous.value if previous else None,
            new_status=new_status.value,
            notify_roles=tuple(rule.notify_roles),
        ))
        return result.model_copy(update={"escalation_triggered": True, "rule_id": rule.id})

    def process_active_requests(self, now: datetime | None = None) -> EscalationSummary:
        """Run check_and_escalate over every open request with a due time."""
        now = now or now_utc()
        rules = self.list_rules()
        requests = self.request_service.list_active()

        escalated = 0
        for request in requests:
            if self.check_and_escalate(request, now, rules).escalation_triggered:
                escalated += 1

        logger.info(f"SLA sweep: {len(requests)} processed, {escalated} escalated")
        return EscalationSummary(processed=len(requests), escalated=escalated)
