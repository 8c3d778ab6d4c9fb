"""Layout algorithms for arrange_objects.

Pure geometry over ``Box`` values: each function takes boxes and returns the
new top-left position per entity id. Positions are rounded to whole pixels.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from .domain_type import LayoutType
from .domain_value import Entity, Position

ALIGNMENTS = ("left", "right", "center", "top", "bottom", "middle")


class Box(BaseModel):
    id: int
    x: float
    y: float
    width: float
    height: float

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_entity(cls, entity: Entity) -> Box:
        return cls(id=entity.id, x=entity.position.x, y=entity.position.y, width=entity.width, height=entity.height)


def _pos(x: float, y: float) -> Position:
    return Position(x=round(x), y=round(y))


def distribute_horizontally(boxes: Sequence[Box], spacing: float | None = None) -> dict[int, Position]:
    """Lay boxes out left to right on their average row.

    ``spacing=None`` keeps the current span and spreads the gaps evenly;
    a number uses that fixed gap starting from the leftmost box.
    """
    if len(boxes) < 2:
        return {box.id: _pos(box.x, box.y) for box in boxes}
    ordered = sorted(boxes, key=lambda box: box.x)
    if spacing is None:
        span = ordered[-1].x + ordered[-1].width - ordered[0].x
        spacing = (span - sum(box.width for box in ordered)) / (len(ordered) - 1)
    row_y = sum(box.y for box in ordered) / len(ordered)
    result: dict[int, Position] = {}
    cursor = ordered[0].x
    for box in ordered:
        result[box.id] = _pos(cursor, row_y)
        cursor += box.width + spacing
    return result


def distribute_vertically(boxes: Sequence[Box], spacing: float | None = None) -> dict[int, Position]:
    """Column counterpart of distribute_horizontally."""
    if len(boxes) < 2:
        return {box.id: _pos(box.x, box.y) for box in boxes}
    ordered = sorted(boxes, key=lambda box: box.y)
    if spacing is None:
        span = ordered[-1].y + ordered[-1].height - ordered[0].y
        spacing = (span - sum(box.height for box in ordered)) / (len(ordered) - 1)
    column_x = sum(box.x for box in ordered) / len(ordered)
    result: dict[int, Position] = {}
    cursor = ordered[0].y
    for box in ordered:
        result[box.id] = _pos(column_x, cursor)
        cursor += box.height + spacing
    return result


def arrange_grid(boxes: Sequence[Box], columns: int = 3, spacing: float = 20) -> dict[int, Position]:
    """Uniform cells sized by the largest box, anchored at the first box."""
    if not boxes:
        return {}
    if columns < 1:
        raise ValueError("columns must be at least 1")
    start_x, start_y = boxes[0].x, boxes[0].y
    cell_w = max(box.width for box in boxes) + spacing
    cell_h = max(box.height for box in boxes) + spacing
    return {
        box.id: _pos(start_x + (index % columns) * cell_w, start_y + (index // columns) * cell_h)
        for index, box in enumerate(boxes)
    }


def circular_layout(boxes: Sequence[Box], radius: float = 200) -> dict[int, Position]:
    """Centre boxes on a circle around the centroid of their current positions."""
    if len(boxes) < 2:
        return {box.id: _pos(box.x, box.y) for box in boxes}
    center_x = sum(box.x for box in boxes) / len(boxes)
    center_y = sum(box.y for box in boxes) / len(boxes)
    step = 2 * math.pi / len(boxes)
    return {
        box.id: _pos(
            center_x + radius * math.cos(index * step) - box.width / 2,
            center_y + radius * math.sin(index * step) - box.height / 2,
        )
        for index, box in enumerate(boxes)
    }


def align(boxes: Sequence[Box], alignment: str, positions: dict[int, Position] | None = None) -> dict[int, Position]:
    """Align boxes to a shared edge or centre line.

    ``positions`` overrides box positions (used to align after distributing).
    """
    if alignment not in ALIGNMENTS:
        raise ValueError(f"Unknown alignment '{alignment}'")
    current = [
        box.model_copy(update={"x": positions[box.id].x, "y": positions[box.id].y})
        if positions and box.id in positions
        else box
        for box in boxes
    ]
    if len(current) < 2:
        return {box.id: _pos(box.x, box.y) for box in current}

    if alignment == "left":
        edge = min(box.x for box in current)
        return {box.id: _pos(edge, box.y) for box in current}
    if alignment == "right":
        edge = max(box.x + box.width for box in current)
        return {box.id: _pos(edge - box.width, box.y) for box in current}
    if alignment == "center":
        axis = sum(box.x + box.width / 2 for box in current) / len(current)
        return {box.id: _pos(axis - box.width / 2, box.y) for box in current}
    if alignment == "top":
        edge = min(box.y for box in current)
        return {box.id: _pos(box.x, edge) for box in current}
    if alignment == "bottom":
        edge = max(box.y + box.height for box in current)
        return {box.id: _pos(box.x, edge - box.height) for box in current}
    axis = sum(box.y + box.height / 2 for box in current) / len(current)
    return {box.id: _pos(box.x, axis - box.height / 2) for box in current}


def arrange(
    boxes: Sequence[Box],
    layout: LayoutType,
    *,
    spacing: float | None = None,
    alignment: str | None = None,
    columns: int | None = None,
    radius: float | None = None,
) -> dict[int, Position]:
    """Apply a layout, then an optional alignment pass."""
    if layout == LayoutType.HORIZONTAL:
        positions = distribute_horizontally(boxes, spacing)
    elif layout == LayoutType.VERTICAL:
        positions = distribute_vertically(boxes, spacing)
    elif layout == LayoutType.GRID:
        positions = arrange_grid(boxes, columns or 3, 20 if spacing is None else spacing)
    elif layout == LayoutType.CIRCULAR:
        positions = circular_layout(boxes, radius or 200)
    else:
        positions = distribute_vertically(boxes, 20 if spacing is None else spacing)

    if alignment:
        positions = align(boxes, alignment, positions)
    return positions


__all__ = [
    "ALIGNMENTS",
    "Box",
    "align",
    "arrange",
    "arrange_grid",
    "circular_layout",
    "distribute_horizontally",
    "distribute_vertically",
]
