"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, to_local, parse_iso, get_zone, local_instant
from utils.actor_context import (
    Actor,
    get_current_actor,
    get_current_user_id,
    get_current_organization_id,
    set_current_actor,
    clear_current_actor,
    actor_context,
)
