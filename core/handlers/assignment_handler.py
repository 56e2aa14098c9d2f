"""
Handler for RequestAssigned events.

Tells the assigned technician about the new job. Vendor assignments have no
in-app recipient and are skipped.
"""

import logging
from typing import Callable

from core.events import RequestAssigned
from core.services.notification_service import NotificationType

logger = logging.getLogger(__name__)


def handle_request_assigned(notification_service) -> Callable:
    """
    Factory that returns a RequestAssigned handler.

    Args:
        notification_service: NotificationService instance

    Returns:
        Handler callable that notifies the assigned technician
    """

    def handler(event: RequestAssigned):
        request = event.request
        if request.assigned_user_id is None:
            return

        notification_service.notify(
            request.assigned_user_id,
            NotificationType.ASSIGNMENT,
            "งานใหม่ได้รับมอบหมาย",
            f'คุณได้รับมอบหมายงาน "{request.title}"',
            request.id,
        )

    return handler
