"""Command API Router - thin HTTP layer over the CanvasAgent aggregate."""

from typing import Annotated

from fastapi import APIRouter, Depends

from ...domain.errors import CommandError
from ...service import CommandService
from ..contracts import CommandRequest, CommandResponse
from ..deps import get_command_service
from ..errors import to_http_exception

router = APIRouter(prefix="/canvases", tags=["commands"])


@router.post("/{canvas_id}/commands", response_model=CommandResponse)
async def execute_command(
    canvas_id: int,
    request: CommandRequest,
    service: Annotated[CommandService, Depends(get_command_service)],
) -> CommandResponse:
    """
    Execute a natural-language command on a canvas.

    Thin orchestration layer:
    1. Hand text, selection and ambient options to the service
    2. The agent classifies, routes, calls a provider and runs the tools
    3. Map CommandError kinds to HTTP statuses
    4. Map the outcome to the API contract

    Individual tool failures do not fail the request; they are reported per
    result with ``status == "failure"``.
    """
    try:
        outcome = await service.execute_command(
            request.text,
            canvas_id,
            selection=request.selection,
            ambient=request.ambient(),
        )
    except CommandError as exc:
        raise to_http_exception(exc) from exc
    return CommandResponse.from_outcome(outcome)
