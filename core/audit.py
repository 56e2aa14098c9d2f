"""
Audit trail for request, pause, assignment and calendar changes.

Append-only, actor-attributed, with old and new values. Rows are written in
the same organization scope as the change they describe.
"""

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient, Transaction
from utils.actor_context import get_current_actor
from utils.timezone import now_utc


class AuditAction(Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    TRANSITION = "transition"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Field-level diff of two entity states.

    Returns:
        {field: {"old": old_val, "new": new_val}} for changed fields
        (updated_at ignored by default). Empty dict if nothing changed.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    for key in set(old.keys()) | set(new.keys()):
        if key in exclude:
            continue
        old_val = old.get(key)
        new_val = new.get(key)
        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


class AuditLogger:
    """
    Writes audit_log rows.

    Pass model_dump(mode="json") output so UUIDs and datetimes serialize.
    Pass `tx` to write inside an open transaction, so the audit entry
    commits or rolls back together with the change.

    Usage:
        changes = compute_changes(old.model_dump(mode="json"), new.model_dump(mode="json"))
        audit.log_change("maintenance_request", new.id, AuditAction.TRANSITION, changes, tx=tx)
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        tx: Transaction | None = None,
    ) -> None:
        actor = get_current_actor()
        query = """
            INSERT INTO audit_log
                (id, organization_id, user_id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            uuid4(),
            actor.organization_id,
            actor.user_id,
            entity_type,
            entity_id,
            action.value,
            Json(changes),
            now_utc(),
        )
        (tx or self.postgres).execute(query, params)

