"""FastAPI application assembly."""

import logging

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import ActorMiddleware, RequestIDMiddleware

logger = logging.getLogger(__name__)


def create_app(services: dict) -> FastAPI:
    """
    App with identity/request-id middleware, error handlers and the
    data/actions routes mounted under /api.

    `services` is the dict returned by core.bootstrap.build_services.
    """
    app = FastAPI(title="Hey! Coffee Maintenance")
    app.add_middleware(ActorMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    return app


def create_default_app() -> FastAPI:
    """Production entry point: database URL from env or Vault."""
    from clients.postgres_client import PostgresClient
    from clients.vault_client import get_database_url
    from core.bootstrap import build_services

    logging.basicConfig(level=logging.INFO)
    postgres = PostgresClient(get_database_url())
    logger.info("Maintenance API starting")
    return create_app(build_services(postgres))
