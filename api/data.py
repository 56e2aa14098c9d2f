"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.exceptions import RequestNotFoundError
from core.models import AssignmentStrategy, SKILL_LEVEL_LABELS, STRATEGY_LABELS


VALID_TYPES = {"requests", "sla", "candidates", "pauses"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    request_svc = services["request"]
    job_control_svc = services["job_control"]
    assignment_svc = services["assignment"]

    # -------------------------------------------------------------------------
    # Convenience routes (must be registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/requests/active")
    async def requests_active(request: Request):
        requests = request_svc.list_active()
        return success_response(
            [r.model_dump(mode="json") for r in requests]
        ).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        strategy: str | None = Query(None),
        include: str | None = Query(None),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "requests":
            return _handle_requests(request_svc, job_control_svc, id, include)

        if id is None:
            raise ValueError(f"'{type}' type requires 'id' parameter")
        request_id = UUID(id)

        if type == "sla":
            return _handle_sla(request_svc, request_id)

        if type == "candidates":
            return _handle_candidates(assignment_svc, request_id, strategy)

        if type == "pauses":
            pauses = job_control_svc.get_pause_history(request_id)
            return success_response(
                [_pause_data(p) for p in pauses]
            ).model_dump(mode="json")

    return router


def _pause_data(pause) -> dict:
    data = pause.model_dump(mode="json")
    data["reason_label"] = pause.reason_label
    return data


def _handle_requests(request_svc, job_control_svc, id, include):
    if id is None:
        requests = request_svc.list_active()
        return success_response(
            [r.model_dump(mode="json") for r in requests]
        ).model_dump(mode="json")

    maintenance_request = request_svc.get_by_id(UUID(id))
    if maintenance_request is None:
        raise RequestNotFoundError(UUID(id))

    includes = set(include.split(",")) if include else set()
    data = maintenance_request.model_dump(mode="json")
    if "pauses" in includes:
        pauses = job_control_svc.get_pause_history(maintenance_request.id)
        data["pauses"] = [_pause_data(p) for p in pauses]

    return success_response(data).model_dump(mode="json")


def _handle_sla(request_svc, request_id: UUID):
    info = request_svc.get_sla(request_id)
    data = info.model_dump(mode="json")
    data["label"] = info.label

    progress = request_svc.get_working_hours_progress(request_id)
    data["working_hours_progress"] = progress.model_dump(mode="json") if progress else None

    return success_response(data).model_dump(mode="json")


def _handle_candidates(assignment_svc, request_id: UUID, strategy: str | None):
    chosen = AssignmentStrategy(strategy) if strategy else None
    result = assignment_svc.recommend(request_id, chosen)

    data = result.model_dump(mode="json")
    data["strategy_label"] = STRATEGY_LABELS[result.strategy]
    for candidate in data["candidates"]:
        for skill in candidate["skills"]:
            skill["level_label"] = SKILL_LEVEL_LABELS[skill["skill_level"]]

    return success_response(data).model_dump(mode="json")
