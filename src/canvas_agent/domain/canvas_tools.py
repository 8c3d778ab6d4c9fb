"""Canvas tools exposed to language models.

Each tool pairs an input model (field types, defaults and descriptions feed
the JSON schema providers see) with an async executor. Create-style tools
also expose a draft builder so consecutive creates can be committed as one
atomic batch.

Tools:
    create_shape, create_text, move_shape, resize_shape, delete_object,
    list_objects, create_component, group_objects, arrange_objects
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Literal
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .colors import DEFAULT_COLOR, normalize_color
from .components import DEFAULT_SIZES, ComponentContent, ComponentFrame, build_component
from .domain_type import CanvasEventType, ComponentType, LayoutType, ShapeType, ThemeName
from .domain_value import CanvasEvent, Entity, EntityDraft, Position
from .errors import DomainError
from .layout import Box, arrange
from .tools import Tool, ToolContext, ToolRegistry

DEFAULT_SHAPE_FILL = "#3B82F6"
DEFAULT_SHAPE_STROKE = "#1E40AF"

_OBJECT_ID = AliasChoices("object_id", "shape_id", "id")


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class CreateShapeInput(BaseModel):
    type: ShapeType = Field(description="Shape type")
    x: float = Field(description="Left edge in canvas pixels")
    y: float = Field(description="Top edge in canvas pixels")
    width: float = Field(default=100, gt=0, description="Width in pixels (diameter for circles)")
    height: float | None = Field(default=None, gt=0, description="Height in pixels; defaults to width")
    color: str | None = Field(
        default=None,
        validation_alias=AliasChoices("color", "fill"),
        description="Fill color as hex (#FF0000) or a color name; defaults to the current color",
    )
    stroke: str = Field(default=DEFAULT_SHAPE_STROKE, description="Outline color")
    stroke_width: float = Field(default=2, ge=0)
    count: int = Field(default=1, ge=1, le=50, description="Number of identical shapes placed in a row")
    spacing: float | None = Field(default=None, ge=0, description="Gap between repeated shapes")

    model_config = ConfigDict(frozen=True, extra="ignore")


class CreateTextInput(BaseModel):
    text: str = Field(min_length=1)
    x: float
    y: float
    font_size: float = Field(default=16, gt=0)
    font_family: str = "Arial"
    color: str | None = Field(default=None, description="Text color; defaults to the current color")
    align: Literal["left", "center", "right"] = "left"

    model_config = ConfigDict(frozen=True, extra="ignore")


class MoveShapeInput(BaseModel):
    object_id: int = Field(validation_alias=_OBJECT_ID, description="Id of the object to move")
    x: float
    y: float

    model_config = ConfigDict(frozen=True, extra="ignore")


class ResizeShapeInput(BaseModel):
    object_id: int = Field(validation_alias=_OBJECT_ID)
    width: float = Field(gt=0)
    height: float | None = Field(default=None, gt=0, description="Ignored for circles")

    model_config = ConfigDict(frozen=True, extra="ignore")


class DeleteObjectInput(BaseModel):
    object_id: int = Field(validation_alias=_OBJECT_ID)

    model_config = ConfigDict(frozen=True, extra="ignore")


class ListObjectsInput(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class CreateComponentInput(BaseModel):
    type: ComponentType = Field(description="Component to build")
    x: float
    y: float
    width: float | None = Field(default=None, gt=0)
    height: float | None = Field(default=None, gt=0)
    theme: ThemeName | None = Field(default=None, description="Color theme; defaults to the current theme")
    content: ComponentContent | None = Field(default=None, description="Optional title, subtitle and item labels")

    model_config = ConfigDict(frozen=True, extra="ignore")


class GroupObjectsInput(BaseModel):
    object_ids: list[int] = Field(default_factory=list, description="Objects to group; defaults to the selection")
    group_name: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class ArrangeObjectsInput(BaseModel):
    object_ids: list[int] = Field(default_factory=list, description="Objects to arrange; defaults to the selection")
    layout_type: LayoutType
    spacing: float | None = Field(default=None, ge=0, description="Gap in pixels; even spacing when omitted")
    alignment: Literal["left", "right", "center", "top", "bottom", "middle"] | None = None
    columns: int | None = Field(default=None, ge=1, description="Grid columns")
    radius: float | None = Field(default=None, gt=0, description="Circle radius for circular layouts")

    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _dump(entity: Entity) -> dict[str, Any]:
    return entity.model_dump(mode="json")


def creation_payload(entities: Sequence[Entity]) -> dict[str, Any]:
    """Payload for one create call: the entity, or {count, objects} for repeats."""
    if len(entities) == 1:
        return _dump(entities[0])
    return {"count": len(entities), "objects": [_dump(entity) for entity in entities]}


def publish(ctx: ToolContext, event_type: CanvasEventType, entities: Sequence[Entity]) -> None:
    if not entities:
        return
    ctx.events.publish(
        CanvasEvent(
            type=event_type,
            canvas_id=ctx.canvas_id,
            entity_ids=tuple(entity.id for entity in entities),
            entities=tuple(entities),
        )
    )


async def require_entity(ctx: ToolContext, entity_id: int) -> Entity:
    entity = await ctx.store.get_entity(entity_id)
    if entity is None or entity.canvas_id != ctx.canvas_id:
        raise DomainError(f"Object {entity_id} not found on this canvas")
    return entity


async def _targets(ctx: ToolContext, object_ids: Sequence[int]) -> list[Entity]:
    ids = list(object_ids) or list(ctx.selection)
    if not ids:
        raise DomainError("No objects specified and nothing is selected")
    return [await require_entity(ctx, entity_id) for entity_id in dict.fromkeys(ids)]


async def _store_drafts(ctx: ToolContext, drafts: list[EntityDraft]) -> list[Entity]:
    if len(drafts) == 1:
        entities = [await ctx.store.create_entity(ctx.canvas_id, drafts[0])]
    else:
        entities = await ctx.store.create_entities_batch(ctx.canvas_id, drafts)
    publish(ctx, CanvasEventType.OBJECT_CREATED, entities)
    return entities


# ---------------------------------------------------------------------------
# Draft builders
# ---------------------------------------------------------------------------


def shape_drafts(params: CreateShapeInput, ctx: ToolContext) -> list[EntityDraft]:
    fill = normalize_color(params.color, normalize_color(ctx.current_color, DEFAULT_SHAPE_FILL))
    height = params.width if params.type == ShapeType.CIRCLE else (params.height or params.width)
    gap = params.width * 0.5 if params.spacing is None else params.spacing
    data = {
        "width": params.width,
        "height": height,
        "fill": fill,
        "stroke": normalize_color(params.stroke, DEFAULT_SHAPE_STROKE),
        "stroke_width": params.stroke_width,
    }
    return [
        EntityDraft(
            kind=params.type.value,
            position=Position(x=params.x + index * (params.width + gap), y=params.y),
            data=dict(data),
        )
        for index in range(params.count)
    ]


def text_drafts(params: CreateTextInput, ctx: ToolContext) -> list[EntityDraft]:
    color = normalize_color(params.color, normalize_color(ctx.current_color, DEFAULT_COLOR))
    return [
        EntityDraft(
            kind="text",
            position=Position(x=params.x, y=params.y),
            data={
                "text": params.text,
                "font_size": params.font_size,
                "font_family": params.font_family,
                "color": color,
                "align": params.align,
            },
        )
    ]


# ---------------------------------------------------------------------------
# Executors
# ---------------------------------------------------------------------------


async def create_shape(params: CreateShapeInput, ctx: ToolContext) -> dict[str, Any]:
    return creation_payload(await _store_drafts(ctx, shape_drafts(params, ctx)))


async def create_text(params: CreateTextInput, ctx: ToolContext) -> dict[str, Any]:
    return creation_payload(await _store_drafts(ctx, text_drafts(params, ctx)))


async def move_shape(params: MoveShapeInput, ctx: ToolContext) -> dict[str, Any]:
    await require_entity(ctx, params.object_id)
    entity = await ctx.store.update_entity(params.object_id, position=Position(x=params.x, y=params.y))
    publish(ctx, CanvasEventType.OBJECT_UPDATED, [entity])
    return _dump(entity)


async def resize_shape(params: ResizeShapeInput, ctx: ToolContext) -> dict[str, Any]:
    current = await require_entity(ctx, params.object_id)
    if current.kind == ShapeType.CIRCLE:
        height = params.width
    else:
        height = params.height or current.data.get("height", params.width)
    entity = await ctx.store.update_entity(params.object_id, data={"width": params.width, "height": height})
    publish(ctx, CanvasEventType.OBJECT_UPDATED, [entity])
    return _dump(entity)


async def delete_object(params: DeleteObjectInput, ctx: ToolContext) -> dict[str, Any]:
    await require_entity(ctx, params.object_id)
    entity = await ctx.store.delete_entity(params.object_id)
    publish(ctx, CanvasEventType.OBJECT_DELETED, [entity])
    return {"deleted": entity.id}


async def list_objects(params: ListObjectsInput, ctx: ToolContext) -> dict[str, Any]:
    entities = await ctx.store.list_entities(ctx.canvas_id)
    return {"count": len(entities), "objects": [_dump(entity) for entity in entities]}


async def create_component(params: CreateComponentInput, ctx: ToolContext) -> dict[str, Any]:
    default_width, default_height = DEFAULT_SIZES[params.type]
    theme = params.theme or _ambient_theme(ctx.theme)
    frame = ComponentFrame(
        x=params.x,
        y=params.y,
        width=params.width or default_width,
        height=params.height or default_height,
        theme=theme,
    )
    drafts = build_component(params.type, frame, params.content)
    entities = await ctx.store.create_entities_batch(ctx.canvas_id, drafts)
    publish(ctx, CanvasEventType.OBJECT_CREATED, entities)
    return {
        "component": params.type.value,
        "theme": theme.value,
        "object_ids": [entity.id for entity in entities],
    }


def _ambient_theme(theme: str | None) -> ThemeName:
    try:
        return ThemeName(theme) if theme else ThemeName.LIGHT
    except ValueError:
        return ThemeName.LIGHT


async def group_objects(params: GroupObjectsInput, ctx: ToolContext) -> dict[str, Any]:
    members = await _targets(ctx, params.object_ids)
    group_id = uuid4().hex
    group_name = params.group_name or f"Group {group_id[:6]}"
    updated = [
        await ctx.store.update_entity(member.id, data={"group_id": group_id, "group_name": group_name})
        for member in members
    ]
    publish(ctx, CanvasEventType.OBJECT_UPDATED, updated)
    return {"group_id": group_id, "group_name": group_name, "object_ids": [entity.id for entity in updated]}


async def arrange_objects(params: ArrangeObjectsInput, ctx: ToolContext) -> dict[str, Any]:
    members = await _targets(ctx, params.object_ids)
    positions = arrange(
        [Box.from_entity(member) for member in members],
        params.layout_type,
        spacing=params.spacing,
        alignment=params.alignment,
        columns=params.columns,
        radius=params.radius,
    )
    updated = [await ctx.store.update_entity(entity_id, position=position) for entity_id, position in positions.items()]
    publish(ctx, CanvasEventType.OBJECT_UPDATED, updated)
    return {
        "layout": params.layout_type.value,
        "updated": [{"id": entity.id, "x": entity.position.x, "y": entity.position.y} for entity in updated],
    }


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

CANVAS_TOOLS: tuple[Tool, ...] = (
    Tool(
        name="create_shape",
        description="Create a rectangle, circle or triangle at a position. Use count to place several identical shapes in a row.",
        input_model=CreateShapeInput,
        executor=create_shape,
        draft_builder=shape_drafts,
    ),
    Tool(
        name="create_text",
        description="Add a text label at a position.",
        input_model=CreateTextInput,
        executor=create_text,
        draft_builder=text_drafts,
    ),
    Tool(
        name="move_shape",
        description="Move an existing object so its top-left corner is at x, y.",
        input_model=MoveShapeInput,
        executor=move_shape,
    ),
    Tool(
        name="resize_shape",
        description="Change the width and height of an existing object.",
        input_model=ResizeShapeInput,
        executor=resize_shape,
    ),
    Tool(
        name="delete_object",
        description="Delete an object from the canvas.",
        input_model=DeleteObjectInput,
        executor=delete_object,
    ),
    Tool(
        name="list_objects",
        description="List every object currently on the canvas with its id, type and position.",
        input_model=ListObjectsInput,
        executor=list_objects,
    ),
    Tool(
        name="create_component",
        description=(
            "Build a complete UI component (login_form, navbar, card, button group, sidebar) "
            "from themed shapes and text in one step."
        ),
        input_model=CreateComponentInput,
        executor=create_component,
    ),
    Tool(
        name="group_objects",
        description="Group several objects so they can be treated as one unit.",
        input_model=GroupObjectsInput,
        executor=group_objects,
    ),
    Tool(
        name="arrange_objects",
        description=(
            "Arrange objects in a horizontal row, vertical column, grid, circle or stack, "
            "optionally aligning them. Defaults to the selected objects."
        ),
        input_model=ArrangeObjectsInput,
        executor=arrange_objects,
    ),
)


def build_canvas_registry() -> ToolRegistry:
    return ToolRegistry.from_tools(CANVAS_TOOLS)


__all__ = [
    "CANVAS_TOOLS",
    "ArrangeObjectsInput",
    "CreateComponentInput",
    "CreateShapeInput",
    "CreateTextInput",
    "DeleteObjectInput",
    "GroupObjectsInput",
    "ListObjectsInput",
    "MoveShapeInput",
    "ResizeShapeInput",
    "build_canvas_registry",
    "creation_payload",
    "publish",
    "require_entity",
    "shape_drafts",
    "text_drafts",
]
