"""
Request lifecycle state machine.

A request's job state is derived from its persisted (status, is_paused) pair.
Only the transitions listed in _TRANSITIONS are legal; everything else raises
InvalidTransitionError before anything is written.
"""

from enum import Enum

from core.exceptions import InvalidTransitionError
from core.models.request import RequestStatus


class JobState(str, Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    RUNNING = "running"
    PAUSED = "paused"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class JobAction(str, Enum):
    ASSIGN = "assign"
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    SUBMIT_REVIEW = "submit_review"
    COMPLETE = "complete"
    CANCEL = "cancel"


_STATE_BY_STATUS = {
    RequestStatus.PENDING: JobState.UNASSIGNED,
    RequestStatus.ASSIGNED: JobState.ASSIGNED,
    RequestStatus.IN_PROGRESS: JobState.RUNNING,
    RequestStatus.PENDING_REVIEW: JobState.IN_REVIEW,
    RequestStatus.COMPLETED: JobState.COMPLETED,
    RequestStatus.CANCELLED: JobState.CANCELLED,
}

# (state, action) -> status written by the transition.
# PAUSE and RESUME keep the status and only flip is_paused.
_TRANSITIONS: dict[tuple[JobState, JobAction], RequestStatus | None] = {
    (JobState.UNASSIGNED, JobAction.ASSIGN): RequestStatus.ASSIGNED,
    (JobState.UNASSIGNED, JobAction.CANCEL): RequestStatus.CANCELLED,
    (JobState.ASSIGNED, JobAction.START): RequestStatus.IN_PROGRESS,
    (JobState.ASSIGNED, JobAction.PAUSE): None,
    (JobState.ASSIGNED, JobAction.CANCEL): RequestStatus.CANCELLED,
    (JobState.RUNNING, JobAction.PAUSE): None,
    (JobState.RUNNING, JobAction.SUBMIT_REVIEW): RequestStatus.PENDING_REVIEW,
    (JobState.RUNNING, JobAction.COMPLETE): RequestStatus.COMPLETED,
    (JobState.RUNNING, JobAction.CANCEL): RequestStatus.CANCELLED,
    (JobState.PAUSED, JobAction.RESUME): None,
    (JobState.PAUSED, JobAction.CANCEL): RequestStatus.CANCELLED,
    (JobState.IN_REVIEW, JobAction.COMPLETE): RequestStatus.COMPLETED,
    (JobState.IN_REVIEW, JobAction.START): RequestStatus.IN_PROGRESS,
    (JobState.IN_REVIEW, JobAction.CANCEL): RequestStatus.CANCELLED,
}


def job_state(status: RequestStatus, is_paused: bool) -> JobState:
    state = _STATE_BY_STATUS[status]
    if is_paused and state in (JobState.ASSIGNED, JobState.RUNNING):
        return JobState.PAUSED
    return state


def allowed_actions(status: RequestStatus, is_paused: bool) -> set[JobAction]:
    state = job_state(status, is_paused)
    return {action for (s, action) in _TRANSITIONS if s == state}


def transition(
    status: RequestStatus, is_paused: bool, action: JobAction
) -> tuple[RequestStatus, bool]:
    """
    Apply `action` to a request in (status, is_paused).

    Returns:
        The (status, is_paused) pair to persist

    Raises:
        InvalidTransitionError: If the action is not allowed from this state
    """
    state = job_state(status, is_paused)
    key = (state, action)
    if key not in _TRANSITIONS:
        raise InvalidTransitionError(
            f"Cannot {action.value} a request that is {state.value}",
            state=state.value,
            action=action.value,
        )

    new_status = _TRANSITIONS[key]
    if action == JobAction.PAUSE:
        return status, True
    if action == JobAction.RESUME:
        return status, False
    # Cancelling a paused job closes the pause along with the request.
    return new_status, False
