"""In-app notifications (the notifications table read by the dashboard)."""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from utils.actor_context import get_current_organization_id
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class NotificationType:
    ASSIGNMENT = "assignment"
    SLA_WARNING = "sla_warning"
    JOB_PAUSED = "job_paused"
    JOB_RESUMED = "job_resumed"


class NotificationService:

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def notify(
        self,
        user_id: UUID,
        notification_type: str,
        title: str,
        message: str | None = None,
        request_id: UUID | None = None,
    ) -> None:
        self.postgres.execute(
            """
            INSERT INTO notifications
                (id, organization_id, user_id, type, title, message, request_id, is_read, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, false, %s)
            """,
            (
                uuid4(), get_current_organization_id(), user_id,
                notification_type, title, message, request_id, now_utc()
            )
        )
        logger.debug(f"Notification '{notification_type}' queued for user {user_id}")

    def notify_many(
        self,
        user_ids: list[UUID],
        notification_type: str,
        title: str,
        message: str | None = None,
        request_id: UUID | None = None,
    ) -> int:
        """Notify each distinct user once. Returns how many were notified."""
        sent = 0
        for user_id in dict.fromkeys(user_ids):
            self.notify(user_id, notification_type, title, message, request_id)
            sent += 1
        return sent

    def user_ids_for_roles(self, roles: list[str]) -> list[UUID]:
        if not roles:
            return []
        rows = self.postgres.execute(
            "SELECT id FROM profiles WHERE role = ANY(%s) ORDER BY id",
            (list(roles),)
        )
        return [UUID(str(row["id"])) for row in rows]
