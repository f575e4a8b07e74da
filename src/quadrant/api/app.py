"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quadrant.api.routes import (
    assessments_router,
    decisions_router,
    health_router,
    manager_router,
    members_router,
    moves_router,
    notifications_router,
    pilots_router,
    quests_router,
    reports_router,
    risk_cases_router,
    skill_gaps_router,
    skills_router,
)
from quadrant.config import get_settings
from quadrant.database import create_schema, dispose_db, init_db
from quadrant.errors import ErrorCode, ServiceError
from quadrant.logging_config import configure_logging
from quadrant.services.state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/app"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    engine, _ = init_db()
    await create_schema(engine)
    yield
    await dispose_db()


def _error(status_code: int, code: str, message: str, details: dict | None = None) -> JSONResponse:
    error: dict = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"ok": False, "error": error})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Quadrant API",
        description="Skills, talent risk and manager workflows",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(InvalidTransitionError)
    async def transition_error_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        return _error(
            status.HTTP_409_CONFLICT,
            "INVALID_TRANSITION",
            str(exc),
            {"from": exc.from_status, "to": exc.to_status},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error(
            status.HTTP_400_BAD_REQUEST,
            ErrorCode.VALIDATION_ERROR.value,
            "Request validation failed",
            {"errors": errors},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCode.INTERNAL_ERROR.value,
            "An unexpected error occurred",
        )

    # Include routers
    app.include_router(health_router)
    for router in (
        skills_router,
        skill_gaps_router,
        risk_cases_router,
        notifications_router,
        moves_router,
        manager_router,
        pilots_router,
        quests_router,
        assessments_router,
        decisions_router,
        reports_router,
        members_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    return app


# Default app instance for uvicorn
app = create_app()
