"""AI status and telemetry response models"""

from pydantic import BaseModel

from ...domain.telemetry import CommandTelemetry
from ...service.command import ProviderStatus


class AIStatusResponse(BaseModel):
    """Breaker, limiter and health state per configured provider"""

    health_monitor_running: bool
    providers: list[ProviderStatus]


class TelemetryResponse(BaseModel):
    """Most recent command telemetry, oldest first"""

    count: int
    events: list[CommandTelemetry]
