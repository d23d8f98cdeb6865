"""
Workflow Engine API
HTTP surface over a WorkflowRegistry: workflow definitions, states, actions,
transitions with their grants, and cycle checks.
"""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from ..config import settings
from ..db import create_db_engine, create_schema
from ..errors import NotFoundError, PersistenceError, UsageConflictError, ValidationError
from ..hooks import FilterHookRegistry
from ..identity import StaticIdentityResolver
from ..logging_config import configure_logging
from ..registry import WorkflowRegistry
from ..storage import SQLModelGateway
from .routers import catalog, workflows

logger = logging.getLogger(__name__)


def default_registry() -> WorkflowRegistry:
    """Registry over ``settings.database_url`` with an empty identity directory."""
    engine = create_db_engine()
    create_schema(engine)
    return WorkflowRegistry(
        SQLModelGateway(engine),
        StaticIdentityResolver(),
        FilterHookRegistry(),
        default_min_users=settings.default_min_users,
    )


def _error(status_code: int, code: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": {"code": code, "message": str(exc)}})


def create_app(registry: Optional[WorkflowRegistry] = None) -> FastAPI:
    configure_logging(settings.log_level, json_format=settings.log_json)

    app = FastAPI(title="Document Workflow API", version="0.1.0", openapi_url="/openapi.json")
    app.state.registry = registry if registry is not None else default_registry()

    app.include_router(workflows.router, tags=["workflows"])
    app.include_router(catalog.router, tags=["catalog"])

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.middleware("http")
    async def add_request_id_header(request: Request, call_next):
        resp: Response = await call_next(request)
        resp.headers.setdefault("X-Request-Id", request.headers.get("X-Request-Id") or uuid4().hex)
        return resp

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return _error(422, "VALIDATION", exc)

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return _error(404, "NOT_FOUND", exc)

    @app.exception_handler(UsageConflictError)
    async def usage_conflict(request: Request, exc: UsageConflictError):
        return _error(409, "IN_USE", exc)

    @app.exception_handler(PersistenceError)
    async def persistence_error(request: Request, exc: PersistenceError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return _error(500, "PERSISTENCE", exc)

    return app
