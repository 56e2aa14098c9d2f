"""POST /api/actions: unified mutation endpoint."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import HolidayCreate, PauseCreate, RequestCreate, WorkingHoursSet


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "request": RequestHandler(services["request"], services["job_control"]),
        "assignment": AssignmentHandler(services["assignment"]),
        "calendar": CalendarHandler(services["calendar"]),
        "escalation": EscalationHandler(services["escalation"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(body.data)
        return success_response(result, getattr(request.state, "request_id", None)).model_dump(mode="json")

    return router


def _id(data: dict, key: str = "id") -> UUID:
    if key not in data:
        raise ValueError(f"'{key}' is required")
    return UUID(str(data[key]))


# =============================================================================
# HANDLER CLASSES
# =============================================================================


class RequestHandler:
    ALLOWED_ACTIONS = {"create", "start", "pause", "resume", "submit_review", "complete", "cancel"}

    def __init__(self, service, job_control):
        self.service = service
        self.job_control = job_control

    def _handle_create(self, data: dict):
        request = self.service.create(RequestCreate(**data))
        return request.model_dump(mode="json")

    def _handle_start(self, data: dict):
        return self.service.start(_id(data)).model_dump(mode="json")

    def _handle_pause(self, data: dict):
        request_id = _id(data)
        pause = self.job_control.pause(request_id, PauseCreate(**{k: v for k, v in data.items() if k != "id"}))
        return pause.model_dump(mode="json")

    def _handle_resume(self, data: dict):
        pause = self.job_control.resume(_id(data), data.get("notes"))
        return pause.model_dump(mode="json")

    def _handle_submit_review(self, data: dict):
        return self.service.submit_review(_id(data)).model_dump(mode="json")

    def _handle_complete(self, data: dict):
        return self.service.complete(_id(data)).model_dump(mode="json")

    def _handle_cancel(self, data: dict):
        return self.service.cancel(_id(data)).model_dump(mode="json")


class AssignmentHandler:
    """Returns the AssignmentOutcome as data; a rejected assignment has success false."""

    ALLOWED_ACTIONS = {"assign", "assign_vendor"}

    def __init__(self, service):
        self.service = service

    def _handle_assign(self, data: dict):
        outcome = self.service.assign(_id(data, "request_id"), _id(data, "technician_id"))
        return outcome.model_dump(mode="json")

    def _handle_assign_vendor(self, data: dict):
        outcome = self.service.assign_vendor(_id(data, "request_id"), _id(data, "vendor_id"))
        return outcome.model_dump(mode="json")


class CalendarHandler:
    ALLOWED_ACTIONS = {"set_working_hours", "add_holiday"}

    def __init__(self, service):
        self.service = service

    def _handle_set_working_hours(self, data: dict):
        hours = self.service.set_working_hours(WorkingHoursSet(**data))
        return [wh.model_dump(mode="json") for wh in hours]

    def _handle_add_holiday(self, data: dict):
        holiday = self.service.add_holiday(HolidayCreate(**data))
        return holiday.model_dump(mode="json")


class EscalationHandler:
    """SLA sweep, triggered by the scheduler that runs the periodic checks."""

    ALLOWED_ACTIONS = {"process_active"}

    def __init__(self, service):
        self.service = service

    def _handle_process_active(self, data: dict):
        return self.service.process_active_requests().model_dump(mode="json")
