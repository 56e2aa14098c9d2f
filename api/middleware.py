"""Request-scoped middleware for API requests."""

from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import ErrorCodes, error_response
from utils.actor_context import Actor, clear_current_actor, set_current_actor


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ActorMiddleware(BaseHTTPMiddleware):
    """
    Sets the actor context from gateway-supplied identity headers.

    The upstream gateway authenticates the caller and forwards X-User-Id and
    X-Organization-Id. Requests without a valid X-User-Id are rejected.
    Context is cleared after the request completes.
    """

    PUBLIC_PATHS = ["/health", "/docs", "/openapi.json"]

    def _is_public_path(self, path: str) -> bool:
        return any(path == p or path.startswith(p) for p in self.PUBLIC_PATHS)

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        try:
            user_id = UUID(request.headers.get("X-User-Id", ""))
            org_header = request.headers.get("X-Organization-Id")
            organization_id = UUID(org_header) if org_header else None
        except ValueError:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Valid X-User-Id header required",
                    getattr(request.state, "request_id", None),
                ).model_dump(mode="json"),
            )

        set_current_actor(Actor(user_id=user_id, organization_id=organization_id))
        request.state.user_id = user_id

        try:
            return await call_next(request)
        finally:
            clear_current_actor()
