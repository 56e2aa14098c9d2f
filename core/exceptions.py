"""Typed exceptions for rejected maintenance operations."""

from uuid import UUID


class MaintenanceError(Exception):
    """
    Base class for domain rejections.

    `code` is the machine-readable error code surfaced by the API.
    """

    code = "INVALID_REQUEST"


class RequestNotFoundError(MaintenanceError):
    """Request does not exist (or is not visible to this organization)."""

    code = "NOT_FOUND"

    def __init__(self, request_id: UUID):
        self.request_id = request_id
        super().__init__(f"Request {request_id} not found")


class InvalidTransitionError(MaintenanceError):
    """
    Lifecycle action not allowed from the request's current state.

    Raised for pause-while-paused, resume-without-pause, acting on a closed
    request, and when a concurrent transition changed the state first.
    """

    code = "INVALID_STATUS_TRANSITION"

    def __init__(self, message: str, state: str | None = None, action: str | None = None):
        self.state = state
        self.action = action
        super().__init__(message)


class AlreadyAssignedError(MaintenanceError):
    """Someone else assigned the request first."""

    code = "ALREADY_ASSIGNED"

    def __init__(self, request_id: UUID):
        self.request_id = request_id
        super().__init__(f"Request {request_id} already assigned")


class TechnicianNotEligibleError(MaintenanceError):
    """Technician is inactive, at capacity, or restricted to another branch."""

    code = "TECHNICIAN_NOT_ELIGIBLE"

    def __init__(self, profile_id: UUID, reason: str = "no longer eligible"):
        self.profile_id = profile_id
        super().__init__(f"Technician {profile_id} {reason}")
