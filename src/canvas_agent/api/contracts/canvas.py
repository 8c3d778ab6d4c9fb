"""Canvas API contracts - use domain types directly."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ...domain.domain_value import Entity


class CreateCanvasRequest(BaseModel):
    """Request to create an empty canvas."""

    name: str = Field(
        min_length=1,
        max_length=200,
        description="Display name of the canvas",
        examples=["Landing page wireframe"],
    )


class CanvasObjectsResponse(BaseModel):
    """Every object on a canvas, ordered by id."""

    canvas_id: int
    count: int = Field(ge=0)
    objects: list[Entity]
