"""Canvas API Router - create canvases and read their objects."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from ...domain.domain_value import Canvas
from ...domain.errors import CommandError, DomainError
from ...service import CommandService
from ..contracts import CanvasObjectsResponse, CreateCanvasRequest
from ..deps import get_command_service
from ..errors import to_http_exception

router = APIRouter(prefix="/canvases", tags=["canvases"])


@router.post("", response_model=Canvas, status_code=201)
async def create_canvas(
    request: CreateCanvasRequest,
    service: Annotated[CommandService, Depends(get_command_service)],
) -> Canvas:
    """Create an empty canvas."""
    try:
        return await service.create_canvas(request.name)
    except DomainError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@router.get("/{canvas_id}/objects", response_model=CanvasObjectsResponse)
async def list_objects(
    canvas_id: int,
    service: Annotated[CommandService, Depends(get_command_service)],
) -> CanvasObjectsResponse:
    """List every object on a canvas, ordered by id."""
    try:
        objects = await service.list_objects(canvas_id)
    except CommandError as exc:
        raise to_http_exception(exc) from exc
    return CanvasObjectsResponse(canvas_id=canvas_id, count=len(objects), objects=objects)
