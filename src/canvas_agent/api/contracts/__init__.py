from .canvas import CanvasObjectsResponse, CreateCanvasRequest
from .command import CommandErrorResponse, CommandRequest, CommandResponse
from .health import HealthResponse
from .status import AIStatusResponse, TelemetryResponse

__all__ = [
    "AIStatusResponse",
    "CanvasObjectsResponse",
    "CommandErrorResponse",
    "CommandRequest",
    "CommandResponse",
    "CreateCanvasRequest",
    "HealthResponse",
    "TelemetryResponse",
]
