"""Propagate the acting user and their organization through the call stack."""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class Actor:
    """Who is performing the current operation, and in which tenant."""

    user_id: UUID
    organization_id: UUID | None = None


_current_actor: ContextVar[Actor | None] = ContextVar("current_actor", default=None)


def get_current_actor() -> Actor:
    """
    Get the current actor from context.

    Raises RuntimeError if no actor is set. Mutating code paths always
    run on behalf of someone; reaching one without an actor is a bug.
    """
    actor = _current_actor.get()
    if actor is None:
        raise RuntimeError(
            "No actor context set. This usually means tenant-scoped code "
            "is running outside of a request or background job."
        )
    return actor


def get_current_user_id() -> UUID:
    """Shortcut for get_current_actor().user_id."""
    return get_current_actor().user_id


def get_current_organization_id() -> UUID | None:
    """Organization of the current actor, or None when no actor is set."""
    actor = _current_actor.get()
    return actor.organization_id if actor else None


def set_current_actor(actor: Actor) -> None:
    """Set current actor. Called by the actor middleware."""
    _current_actor.set(actor)


def clear_current_actor() -> None:
    """
    Clear actor context.

    Must be called in a finally block to prevent context leakage.
    """
    _current_actor.set(None)


@contextmanager
def actor_context(user_id: UUID, organization_id: UUID | None = None):
    """
    Temporarily act as a given user.

    Example:
        with actor_context(admin_id, org_id):
            assignment_service.assign(request_id, technician_id)
    """
    previous = _current_actor.get()
    set_current_actor(Actor(user_id=user_id, organization_id=organization_id))
    try:
        yield
    finally:
        if previous is None:
            clear_current_actor()
        else:
            set_current_actor(previous)
