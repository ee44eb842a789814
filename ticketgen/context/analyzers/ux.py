"""UX-signal extraction: interactions, text hierarchy, copy, prototype flows."""

from __future__ import annotations

from typing import Any, Dict, List

from ...models import ContextSource
from ..figma_utils import interactive_kind, is_interactive, node_name, node_size, text_style
from .base import AnalysisInput, AnalysisOutcome, make_fragment

EXPECTED_FIELDS = ["interactiveElements", "textHierarchy", "contentCopy", "prototypeFlows"]

MIN_TEXT_SIZE = 12
MIN_TOUCH_TARGET = 44
MAX_COPY_ITEMS = 20


def analyze_ux(inp: AnalysisInput) -> AnalysisOutcome:
    interactive: List[Dict[str, Any]] = []
    flows: List[Dict[str, Any]] = []
    sizes: set = set()
    notes: List[str] = []

    for node, _depth in inp.index.nodes:
        name = node_name(node) or str(node.get("id", "unnamed"))

        if is_interactive(node):
            interactive.append({"name": name, "kind": interactive_kind(node)})
            size = node_size(node)
            if size and (size[0] < MIN_TOUCH_TARGET or size[1] < MIN_TOUCH_TARGET):
                notes.append(
                    f"'{name}' touch target {size[0]:g}x{size[1]:g} is below {MIN_TOUCH_TARGET}x{MIN_TOUCH_TARGET}"
                )

        reactions = node.get("reactions")
        if isinstance(reactions, list):
            for reaction in reactions:
                if not isinstance(reaction, dict):
                    continue
                trigger = reaction.get("trigger") if isinstance(reaction.get("trigger"), dict) else {}
                action = reaction.get("action") if isinstance(reaction.get("action"), dict) else {}
                flows.append({
                    "from": name,
                    "trigger": trigger.get("type", "UNKNOWN"),
                    "action": action.get("type", "UNKNOWN"),
                    "destination": action.get("destinationId"),
                })

        if node.get("type") == "TEXT":
            size = text_style(node).get("fontSize")
            if size is not None:
                sizes.add(size)
                if size < MIN_TEXT_SIZE:
                    notes.append(f"'{name}' uses {size:g}px text, below {MIN_TEXT_SIZE}px")

    hierarchy = sorted(sizes, reverse=True)
    copy = inp.index.texts()[:MAX_COPY_ITEMS]
    if interactive and not copy:
        notes.append("interactive elements have no visible text labels; add aria-labels")

    data = {
        "interactiveElements": interactive,
        # A single size is not a hierarchy
        "textHierarchy": hierarchy if len(hierarchy) >= 2 else [],
        "contentCopy": copy,
        "prototypeFlows": flows,
        "accessibilityNotes": notes,
    }
    return AnalysisOutcome.success(make_fragment(ContextSource.UX, data, EXPECTED_FIELDS))
