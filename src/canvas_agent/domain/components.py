"""Component Builder - Composite UI Constructs as Entity Drafts.

Expands a high-level component request ("login form at 100,100, dark theme")
into the primitive shapes and text entities that draw it. Builders are pure:
they return drafts, and the caller stores them in one atomic batch so a
component never appears half-drawn.

Key Components:
    - ComponentContent: optional title/subtitle/items overrides
    - build_component: dispatch on ComponentType to the per-component layout
    - DEFAULT_SIZES: fallback width/height when the request omits them
"""

from __future__ import annotations

from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from .colors import theme_colors
from .domain_type import ComponentType, ThemeName
from .domain_value import EntityDraft, Position

DEFAULT_SIZES: dict[ComponentType, tuple[float, float]] = {
    ComponentType.LOGIN_FORM: (320, 280),
    ComponentType.NAVBAR: (800, 60),
    ComponentType.CARD: (300, 200),
    ComponentType.BUTTON: (360, 44),
    ComponentType.SIDEBAR: (220, 400),
}

FONT_FAMILY = "Arial"


class ComponentContent(BaseModel):
    """Caller-supplied text for a component; unset fields use per-component defaults."""

    title: str | None = None
    subtitle: str | None = None
    items: tuple[str, ...] | None = None

    model_config = ConfigDict(frozen=True)


class ComponentFrame(BaseModel):
    """Where a component goes and how it is styled."""

    x: float
    y: float
    width: float
    height: float
    theme: ThemeName = ThemeName.LIGHT

    model_config = ConfigDict(frozen=True)

    @property
    def colors(self) -> dict[str, str]:
        return theme_colors(self.theme)


def _rect(
    x: float,
    y: float,
    width: float,
    height: float,
    fill: str,
    stroke: str,
    stroke_width: float,
    role: str,
) -> EntityDraft:
    return EntityDraft(
        kind="rectangle",
        position=Position(x=x, y=y),
        data={
            "width": width,
            "height": height,
            "fill": fill,
            "stroke": stroke,
            "stroke_width": stroke_width,
            "role": role,
        },
    )


def _text(
    text: str,
    x: float,
    y: float,
    font_size: float,
    color: str,
    align: str = "left",
    role: str = "label",
) -> EntityDraft:
    return EntityDraft(
        kind="text",
        position=Position(x=x, y=y),
        data={
            "text": text,
            "font_size": font_size,
            "font_family": FONT_FAMILY,
            "color": color,
            "align": align,
            "role": role,
        },
    )


def login_form(frame: ComponentFrame, content: ComponentContent) -> list[EntityDraft]:
    """Container, title, two labelled inputs and a submit button (8 entities)."""
    c = frame.colors
    x, y, w = frame.x, frame.y, frame.width
    return [
        _rect(x, y, w, frame.height, c["bg"], c["border"], 2, "container"),
        _text(content.title or "Login", x + w / 2, y + 20, 24, c["text_primary"], "center", "title"),
        _text("Username:", x + 20, y + 60, 14, c["text_secondary"]),
        _rect(x + 20, y + 80, w - 40, 40, c["input_bg"], c["input_border"], 1, "input"),
        _text("Password:", x + 20, y + 130, 14, c["text_secondary"]),
        _rect(x + 20, y + 150, w - 40, 40, c["input_bg"], c["input_border"], 1, "input"),
        _rect(x + 20, y + 210, w - 40, 45, c["button_bg"], c["button_border"], 1, "button"),
        _text("Sign In", x + w / 2, y + 225, 16, c["button_text"], "center", "button_label"),
    ]


def navbar(frame: ComponentFrame, content: ComponentContent) -> list[EntityDraft]:
    c = frame.colors
    x, y, w, h = frame.x, frame.y, frame.width, frame.height
    items = content.items or ("Home", "About", "Services", "Contact")
    drafts = [
        _rect(x, y, w, h, c["navbar_bg"], c["border"], 0, "container"),
        _text(content.title or "Brand", x + 20, y + h / 2 - 10, 20, c["text_primary"], role="title"),
    ]
    spacing = (w - 200) / (len(items) - 1) if len(items) > 1 else 0
    for index, item in enumerate(items):
        drafts.append(_text(item, x + 200 + index * spacing, y + h / 2 - 8, 16, c["text_secondary"], "center", "item"))
    return drafts


def card(frame: ComponentFrame, content: ComponentContent) -> list[EntityDraft]:
    """Shadow, body, header band, title, description and footer band."""
    c = frame.colors
    x, y, w, h = frame.x, frame.y, frame.width, frame.height
    return [
        _rect(x + 4, y + 4, w, h, c["shadow"], c["shadow"], 0, "shadow"),
        _rect(x, y, w, h, c["card_bg"], c["border"], 1, "container"),
        _rect(x, y, w, 60, c["card_header_bg"], c["border"], 0, "header"),
        _text(content.title or "Card Title", x + 20, y + 20, 18, c["text_primary"], role="title"),
        _text(content.subtitle or "Card description goes here", x + 20, y + 80, 14, c["text_secondary"], role="subtitle"),
        _rect(x, y + h - 50, w, 50, c["card_footer_bg"], c["border"], 0, "footer"),
    ]


def button_group(frame: ComponentFrame, content: ComponentContent) -> list[EntityDraft]:
    c = frame.colors
    x, y, w, h = frame.x, frame.y, frame.width, frame.height
    items = content.items or ("Button 1", "Button 2", "Button 3")
    button_width = (w - 20 * (len(items) - 1)) / len(items)
    drafts: list[EntityDraft] = []
    for index, label in enumerate(items):
        bx = x + index * (button_width + 20)
        drafts.append(_rect(bx, y, button_width, h, c["button_bg"], c["button_border"], 1, "button"))
        drafts.append(_text(label, bx + button_width / 2, y + h / 2 - 8, 14, c["button_text"], "center", "button_label"))
    return drafts


def sidebar(frame: ComponentFrame, content: ComponentContent) -> list[EntityDraft]:
    c = frame.colors
    x, y, w = frame.x, frame.y, frame.width
    items = content.items or ("Dashboard", "Profile", "Settings", "Logout")
    drafts = [
        _rect(x, y, w, frame.height, c["sidebar_bg"], c["border"], 1, "container"),
        _text(content.title or "Menu", x + 20, y + 20, 20, c["text_primary"], role="title"),
    ]
    for index, item in enumerate(items):
        item_y = y + 60 + index * 50
        drafts.append(_rect(x + 10, item_y, w - 20, 40, c["sidebar_item_bg"], c["sidebar_item_border"], 1, "item"))
        drafts.append(_text(item, x + 25, item_y + 12, 14, c["text_secondary"], role="item_label"))
    return drafts


BUILDERS: dict[ComponentType, Callable[[ComponentFrame, ComponentContent], list[EntityDraft]]] = {
    ComponentType.LOGIN_FORM: login_form,
    ComponentType.NAVBAR: navbar,
    ComponentType.CARD: card,
    ComponentType.BUTTON: button_group,
    ComponentType.SIDEBAR: sidebar,
}


def build_component(
    component: ComponentType,
    frame: ComponentFrame,
    content: ComponentContent | None = None,
) -> list[EntityDraft]:
    """Expand a component into drafts, tagging each with the component type."""
    drafts = BUILDERS[component](frame, content or ComponentContent())
    return [draft.model_copy(update={"data": {**draft.data, "component": component.value}}) for draft in drafts]


__all__ = [
    "BUILDERS",
    "DEFAULT_SIZES",
    "ComponentContent",
    "ComponentFrame",
    "build_component",
]
