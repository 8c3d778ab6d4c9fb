"""Canvas Agent API

FastAPI application that turns natural-language commands into canvas
mutations through a fast/capable provider pair with circuit breaking,
rate limiting, health-aware fallback and atomic batch creation.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import logfire
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from .api.deps import get_command_service
from .api.routers import canvases_router, commands_router, health_router, status_router
from .config import Settings, settings


def console_options(config: Settings) -> logfire.ConsoleOptions:
    """Console output settings; LOG_LEVEL sets the minimum level printed."""
    return logfire.ConsoleOptions(min_log_level=config.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown logic"""
    logfire.configure(
        service_name=settings.app_name,
        service_version=settings.app_version,
        environment=settings.environment,
        send_to_logfire="if-token-present",
        console=console_options(settings),
    )
    logfire.info("Starting {app_name} v{app_version}", app_name=settings.app_name, app_version=settings.app_version)
    service = get_command_service()
    await service.start()
    yield
    logfire.info("Shutting down")
    await service.stop()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description=settings.app_description,
    version=settings.app_version,
    debug=settings.environment == "development",
    lifespan=lifespan,
)

# Add CORS middleware
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_credentials=settings.cors_credentials,
        allow_methods=settings.cors_methods.split(","),
        allow_headers=settings.cors_headers.split(","),
    )

app.include_router(health_router)
app.include_router(canvases_router)
app.include_router(commands_router)
app.include_router(status_router)


@app.get("/")
async def root() -> RedirectResponse:
    """Redirect root to API docs"""
    return RedirectResponse(url="/docs")
