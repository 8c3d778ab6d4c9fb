"""Command Classifier - Rule-Based Fast/Capable Routing.

Decides, without calling any model, whether a natural-language command is a
single primitive operation (FAST) or needs multi-step reasoning (CAPABLE).
The decision is a pure function of the text: same input, same class.

Rules (evaluated in order, first match wins):
    1. Simple primitive pattern, at most one distinct action verb, no conjunction → FAST
    2. Two or more action verbs, or a verb joined by and/then/with → CAPABLE
    3. Ambiguous references to existing objects (this, these, selected...) → CAPABLE
    4. Composite UI constructs (form, navbar, card...) → CAPABLE
    5. Spatial arrangement vocabulary (arrange, grid, evenly...) → CAPABLE
    6. Anything else → FAST

Matching is case-insensitive and uses word boundaries, so "it" never
matches inside "item".
"""

from __future__ import annotations

import re

from .domain_type import ClassificationReason, CommandClass

ACTION_VERBS = (
    "create",
    "make",
    "add",
    "draw",
    "write",
    "move",
    "resize",
    "scale",
    "rotate",
    "delete",
    "remove",
    "arrange",
    "align",
    "distribute",
    "group",
    "duplicate",
    "copy",
    "change",
    "set",
)

SIMPLE_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"^(create|make) (a|an) \w+ (circle|rectangle|square|triangle)\b",
        r"^(create|make|add|draw) (a|an) (circle|rectangle|square|triangle)\b",
        r"^(create|add|make|write) (a |an )?(\w+ )?text\b",
        r"^move .+ to \d+\s*,\s*\d+",
        r"^move .+ by -?\d+\s*,\s*-?\d+",
        r"^resize .+ to \d+\s*x\s*\d+",
        r"^make .+ \d+\s*x\s*\d+( (pixels|px))?",
        r"^scale .+ to \d+",
        r"^(delete|remove) (object|shape|item|element) \w+",
    )
)

_VERB_RE = re.compile(r"\b(" + "|".join(ACTION_VERBS) + r")\b")
_CONJUNCTION_RE = re.compile(r"\b(and|then|with)\b")
_CONTEXT_RE = re.compile(r"\b(this|that|these|those|selected|selection|them|it)\b")
_COMPONENT_RE = re.compile(
    r"\b(form|login|signup|navbar|nav bar|navigation|sidebar|card|menu|dashboard|header|footer|"
    r"button group|toolbar|panel|modal|layout)\b"
)
_LAYOUT_RE = re.compile(
    r"\b(arrange|align|distribute|grid|row|rows|column|columns|stack|center|centre|organize|"
    r"horizontal|horizontally|vertical|vertically|evenly|spacing)\b"
)


def _distinct_verbs(text: str) -> set[str]:
    return set(_VERB_RE.findall(text))


def explain(text: str) -> tuple[CommandClass, ClassificationReason]:
    """Classify a command and report which rule decided it.

    Args:
        text: Raw command text (any case, surrounding whitespace ignored)

    Returns:
        (command class, reason) pair

    Example:
        >>> explain("create a login form")
        (<CommandClass.CAPABLE: 'capable'>, <ClassificationReason.COMPONENT: 'component'>)
    """
    normalized = " ".join(text.lower().split())
    verbs = _distinct_verbs(normalized)

    joined = _CONJUNCTION_RE.search(normalized) is not None

    if len(verbs) <= 1 and not joined and any(pattern.match(normalized) for pattern in SIMPLE_PATTERNS):
        return CommandClass.FAST, ClassificationReason.SIMPLE_PATTERN

    if len(verbs) >= 2 or (verbs and joined):
        return CommandClass.CAPABLE, ClassificationReason.MULTI_STEP

    if _CONTEXT_RE.search(normalized):
        return CommandClass.CAPABLE, ClassificationReason.CONTEXTUAL

    if _COMPONENT_RE.search(normalized):
        return CommandClass.CAPABLE, ClassificationReason.COMPONENT

    if _LAYOUT_RE.search(normalized):
        return CommandClass.CAPABLE, ClassificationReason.LAYOUT

    return CommandClass.FAST, ClassificationReason.DEFAULT


def classify(text: str) -> CommandClass:
    """Pure fast/capable decision for a command text."""
    return explain(text)[0]


__all__ = ["ACTION_VERBS", "SIMPLE_PATTERNS", "classify", "explain"]
