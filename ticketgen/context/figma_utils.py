"""Figma node helpers shared by the context analyzers.

Traversal is bounded: ``walk_nodes`` stops at ``max_depth`` and visits each
node object at most once, so a malformed (cyclic or pathologically deep)
tree from the design source cannot hang analysis.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

DEFAULT_MAX_DEPTH = 64

# Synthetic wrapper types whose children are the real selection roots
_CONTAINER_TYPES = {"DOCUMENT", "SELECTION", "CANVAS"}

INTERACTIVE_KEYWORDS = (
    "button", "btn", "cta", "input", "field", "link", "toggle", "switch",
    "checkbox", "radio", "select", "dropdown", "tab", "menu", "slider", "search",
)


def figma_color_to_hex(color: Dict) -> str:
    """Convert Figma RGBA float dict {r,g,b,a} to hex string."""
    r = round(color.get("r", 0) * 255)
    g = round(color.get("g", 0) * 255)
    b = round(color.get("b", 0) * 255)
    a = color.get("a", 1.0)
    hex_rgb = f"#{r:02X}{g:02X}{b:02X}"
    if a < 1.0:
        hex_rgb += f"{round(a * 255):02X}"
    return hex_rgb


@dataclass
class WalkStats:
    """Filled in while ``walk_nodes`` runs."""

    max_depth_seen: int = 0
    truncated: bool = False
    cycles: int = 0


def walk_nodes(
    document: Optional[Dict[str, Any]],
    max_depth: int = DEFAULT_MAX_DEPTH,
    stats: Optional[WalkStats] = None,
) -> Iterator[Tuple[Dict[str, Any], int]]:
    """Yield ``(node, depth)`` pairs depth-first, pre-order.

    Container roots (DOCUMENT/SELECTION/CANVAS) are not yielded; their
    children start at depth 0. Non-dict children are ignored.
    """
    if not isinstance(document, dict):
        return
    stats = stats if stats is not None else WalkStats()

    visited: set[int] = set()
    if document.get("type") in _CONTAINER_TYPES:
        roots = [c for c in document.get("children") or [] if isinstance(c, dict)]
        visited.add(id(document))
    else:
        roots = [document]

    stack: List[Tuple[Dict[str, Any], int]] = [(n, 0) for n in reversed(roots)]
    while stack:
        node, depth = stack.pop()
        if id(node) in visited:
            stats.cycles += 1
            continue
        visited.add(id(node))
        stats.max_depth_seen = max(stats.max_depth_seen, depth)
        yield node, depth

        children = node.get("children")
        if not isinstance(children, list) or not children:
            continue
        if depth + 1 > max_depth:
            stats.truncated = True
            continue
        for child in reversed(children):
            if isinstance(child, dict):
                stack.append((child, depth + 1))


def node_name(node: Dict[str, Any]) -> str:
    name = node.get("name")
    return name.strip() if isinstance(name, str) else ""


def is_visible(node: Dict[str, Any]) -> bool:
    return node.get("visible", True) is not False


def solid_colors(node: Dict[str, Any]) -> List[str]:
    """Hex values of visible SOLID fills and strokes on one node."""
    colors: List[str] = []
    for key in ("fills", "strokes"):
        paints = node.get(key)
        if not isinstance(paints, list):
            continue
        for paint in paints:
            if not isinstance(paint, dict) or paint.get("visible") is False:
                continue
            if paint.get("type") == "SOLID" and isinstance(paint.get("color"), dict):
                colors.append(figma_color_to_hex(paint["color"]))
    return colors


def node_size(node: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    bbox = node.get("absoluteBoundingBox")
    if isinstance(bbox, dict) and "width" in bbox and "height" in bbox:
        return float(bbox["width"]), float(bbox["height"])
    if "width" in node and "height" in node:
        try:
            return float(node["width"]), float(node["height"])
        except (TypeError, ValueError):
            return None
    return None


def text_style(node: Dict[str, Any]) -> Dict[str, Any]:
    """Font properties of a TEXT node (REST ``style`` or plugin top-level keys)."""
    style = node.get("style") if isinstance(node.get("style"), dict) else {}
    font_name = node.get("fontName") if isinstance(node.get("fontName"), dict) else {}
    family = style.get("fontFamily") or font_name.get("family")
    size = style.get("fontSize", node.get("fontSize"))
    weight = style.get("fontWeight", node.get("fontWeight"))
    result: Dict[str, Any] = {}
    if isinstance(family, str) and family:
        result["fontFamily"] = family
    if isinstance(size, (int, float)) and not isinstance(size, bool):
        result["fontSize"] = size
    if isinstance(weight, (int, float)) and not isinstance(weight, bool):
        result["fontWeight"] = weight
    return result


def is_interactive(node: Dict[str, Any]) -> bool:
    if node.get("reactions"):
        return True
    lowered = node_name(node).lower()
    return any(keyword in lowered for keyword in INTERACTIVE_KEYWORDS)


def interactive_kind(node: Dict[str, Any]) -> str:
    lowered = node_name(node).lower()
    for keyword in INTERACTIVE_KEYWORDS:
        if keyword in lowered:
            return {"btn": "button", "cta": "button", "field": "input", "switch": "toggle",
                    "dropdown": "select"}.get(keyword, keyword)
    return "prototype-trigger"


@dataclass
class NodeIndex:
    """Single-pass index of a design document, reused by every analyzer."""

    nodes: List[Tuple[Dict[str, Any], int]] = field(default_factory=list)
    stats: WalkStats = field(default_factory=WalkStats)

    @classmethod
    def build(cls, document: Optional[Dict[str, Any]], max_depth: int = DEFAULT_MAX_DEPTH) -> "NodeIndex":
        stats = WalkStats()
        nodes = list(walk_nodes(document, max_depth=max_depth, stats=stats))
        return cls(nodes=nodes, stats=stats)

    def __len__(self) -> int:
        return len(self.nodes)

    def of_type(self, node_type: str) -> List[Dict[str, Any]]:
        return [n for n, _ in self.nodes if n.get("type") == node_type]

    def texts(self) -> List[str]:
        out: List[str] = []
        for node in self.of_type("TEXT"):
            chars = node.get("characters")
            if isinstance(chars, str) and chars.strip():
                out.append(chars.strip())
        return out

    def names(self) -> List[str]:
        return [node_name(n) for n, _ in self.nodes if node_name(n)]
