"""FastAPI application setup for the family calendar API.

Serve with `uvicorn --factory familycal.app.app:create_app`.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from familycal.config import Settings, load_settings
from .env_loader import load_env
from .errors import register_exception_handlers
from .routers import (
    sync_router,
    calendars_router,
    events_router,
    admin_router,
    auth_router,
)
from .services import Services, build_services

logger = logging.getLogger(__name__)


def configure_logging(log_level: str | None) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s - %(filename)s:%(lineno)d",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Configure the logging for the API itself if the user specifies it.
    if log_level is None:
        return
    match log_level.upper():
        case "DEBUG":
            level = logging.DEBUG
        case "INFO":
            level = logging.INFO
        case "WARNING":
            level = logging.WARNING
        case "ERROR":
            level = logging.ERROR
        case "CRITICAL":
            level = logging.CRITICAL
        case _:
            raise ValueError(f"Invalid log level: {log_level}")
    logging.getLogger("familycal").setLevel(level)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use; read from the environment if omitted.
        services: Prebuilt services. If omitted they are built from `settings`
            when the app starts and closed when it shuts down.
    """
    if settings is None:
        if services is not None:
            settings = services.settings
        else:
            load_env()
            settings = load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owns_services = app.state.services is None
        if owns_services:
            app.state.services = build_services(settings)
        app.state.services.start()
        logger.info("Family calendar API started")
        try:
            yield
        finally:
            if owns_services:
                await app.state.services.aclose()
                app.state.services = None
            else:
                await app.state.services.monitor.stop()

    app = FastAPI(title="Family Calendar API", lifespan=lifespan)
    app.state.settings = settings
    app.state.services = services

    app.include_router(sync_router)
    app.include_router(calendars_router)
    app.include_router(events_router)
    app.include_router(admin_router)
    app.include_router(auth_router)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app, expose_details=not settings.is_production)

    @app.get("/api/health")
    def health_check(response: Response) -> dict[str, str]:
        """Health check endpoint that returns 200 status with CORS from anywhere."""
        response.headers["Access-Control-Allow-Origin"] = "*"
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "message": "Family Calendar API is running",
        }

    return app
