"""API router exports"""

from .canvases import router as canvases_router
from .commands import router as commands_router
from .health import router as health_router
from .status import router as status_router

__all__ = ["canvases_router", "commands_router", "health_router", "status_router"]
