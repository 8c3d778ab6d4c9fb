"""Canvas agent package exports."""

from .config import Settings, settings
from .domain import CanvasAgent, CommandOutcome
from .service import CommandService

__all__ = [
    "CanvasAgent",
    "CommandOutcome",
    "CommandService",
    "Settings",
    "settings",
]
