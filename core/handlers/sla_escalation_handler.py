"""
Handler for SLAEscalated events.

Notifies everyone holding one of the escalation rule's roles, plus the
assigned technician.
"""

import logging
from datetime import timedelta
from typing import Callable

from core.events import SLAEscalated
from core.models import SLAStatus
from core.services.notification_service import NotificationType

logger = logging.getLogger(__name__)


def escalation_title(status: SLAStatus, hours_remaining: int) -> str:
    if status == SLAStatus.BREACHED:
        return "งานเกินกำหนด SLA แล้ว!"
    if status == SLAStatus.CRITICAL:
        return f"เร่งด่วน! SLA เหลือเวลาไม่ถึง {hours_remaining} ชั่วโมง"
    return f"SLA ใกล้ครบกำหนด! เหลือ {hours_remaining} ชั่วโมง"


def handle_sla_escalated(notification_service) -> Callable:
    """
    Factory that returns an SLAEscalated handler.

    Args:
        notification_service: NotificationService instance

    Returns:
        Handler callable that fans the escalation out to role holders
    """

    def handler(event: SLAEscalated):
        request = event.request

        recipients = notification_service.user_ids_for_roles(list(event.notify_roles))
        if request.assigned_user_id is not None:
            recipients.append(request.assigned_user_id)

        hours_remaining = 0
        if request.due_at is not None:
            hours_remaining = max(0, (request.due_at - event.occurred_at) // timedelta(hours=1))

        sent = notification_service.notify_many(
            recipients,
            NotificationType.SLA_WARNING,
            escalation_title(SLAStatus(event.new_status), hours_remaining),
            request.title,
            request.id,
        )
        logger.info(f"SLA escalation for request {request.id}: {sent} notified")

    return handler
