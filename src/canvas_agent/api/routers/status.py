"""AI status router

Operational view of the provider layer.

Endpoints:
- GET /ai/status: circuit state, requests in the rate window and health per provider
- GET /ai/telemetry: most recent command telemetry events
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ...service import CommandService
from ..contracts import AIStatusResponse, TelemetryResponse
from ..deps import get_command_service

router = APIRouter(prefix="/ai", tags=["ai"])


@router.get("/status", response_model=AIStatusResponse)
async def ai_status(
    service: Annotated[CommandService, Depends(get_command_service)],
) -> AIStatusResponse:
    """Provider circuit, rate and health state"""
    health = service.agent.health
    return AIStatusResponse(
        health_monitor_running=health.running if health else False,
        providers=service.status(),
    )


@router.get("/telemetry", response_model=TelemetryResponse)
async def ai_telemetry(
    service: Annotated[CommandService, Depends(get_command_service)],
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> TelemetryResponse:
    """Recent command telemetry"""
    events = service.recent_telemetry(limit)
    return TelemetryResponse(count=len(events), events=events)
