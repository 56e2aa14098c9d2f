"""
Handlers for JobPaused and JobResumed events.

The requester and the assigned technician both hear about pauses and resumes.
"""

import logging
from typing import Callable

from core.events import JobEvent, JobPaused, JobResumed
from core.services.notification_service import NotificationType

logger = logging.getLogger(__name__)


def _recipients(event: JobEvent) -> list:
    request = event.request
    return [uid for uid in (request.created_by, request.assigned_user_id) if uid is not None]


def handle_job_paused(notification_service) -> Callable:
    """Factory that returns a JobPaused handler."""

    def handler(event: JobPaused):
        request = event.request
        notification_service.notify_many(
            _recipients(event),
            NotificationType.JOB_PAUSED,
            "งานถูกหยุดพักชั่วคราว",
            f'งาน "{request.title}" ถูกหยุดพัก: {event.pause.reason_label}',
            request.id,
        )

    return handler


def handle_job_resumed(notification_service) -> Callable:
    """Factory that returns a JobResumed handler."""

    def handler(event: JobResumed):
        request = event.request
        notification_service.notify_many(
            _recipients(event),
            NotificationType.JOB_RESUMED,
            "งานดำเนินการต่อ",
            f'งาน "{request.title}" กลับมาดำเนินการต่อแล้ว',
            request.id,
        )

    return handler
