"""Design-token extraction: colors, typography, spacing, radii."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List

from ...models import ContextSource
from ..figma_utils import is_visible, solid_colors, text_style
from .base import AnalysisInput, AnalysisOutcome, make_fragment

EXPECTED_FIELDS = ["colorPalette", "typography", "spacing", "cornerRadii"]

MAX_PALETTE = 12

_SPACING_KEYS = ("itemSpacing", "paddingLeft", "paddingRight", "paddingTop", "paddingBottom")


def _positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _named_styles(styles: Dict[str, Any]) -> Dict[str, List[str]]:
    """Group published style names by type.

    Accepts the REST ``/styles`` payload (``meta.styles`` list) or the
    ``styles`` map embedded in ``/nodes`` responses.
    """
    grouped: Dict[str, List[str]] = {}
    entries: List[Dict[str, Any]] = []
    meta = styles.get("meta")
    if isinstance(meta, dict) and isinstance(meta.get("styles"), list):
        entries = [s for s in meta["styles"] if isinstance(s, dict)]
    else:
        entries = [s for s in styles.values() if isinstance(s, dict)]
    for entry in entries:
        name = entry.get("name")
        kind = entry.get("style_type") or entry.get("styleType") or "OTHER"
        if isinstance(name, str) and name:
            grouped.setdefault(str(kind).lower(), []).append(name)
    return grouped


def analyze_design_tokens(inp: AnalysisInput) -> AnalysisOutcome:
    if not isinstance(inp.design.styles, dict):
        return AnalysisOutcome.failure(ContextSource.DESIGN, "styles is not a mapping")

    colors: Counter = Counter()
    families: Counter = Counter()
    sizes: set = set()
    weights: set = set()
    spacing: set = set()
    radii: set = set()

    for node, _depth in inp.index.nodes:
        if not is_visible(node):
            continue
        colors.update(solid_colors(node))
        if node.get("type") == "TEXT":
            style = text_style(node)
            if "fontFamily" in style:
                families[style["fontFamily"]] += 1
            if "fontSize" in style:
                sizes.add(style["fontSize"])
            if "fontWeight" in style:
                weights.add(style["fontWeight"])
        for key in _SPACING_KEYS:
            if _positive_number(node.get(key)):
                spacing.add(node[key])
        if _positive_number(node.get("cornerRadius")):
            radii.add(node["cornerRadius"])

    palette = [{"hex": hex_value, "count": count} for hex_value, count in colors.most_common(MAX_PALETTE)]
    typography: Dict[str, Any] = {}
    if families or sizes:
        typography = {
            "fontFamilies": [name for name, _ in families.most_common()],
            "fontSizes": sorted(sizes),
            "fontWeights": sorted(weights),
        }

    data = {
        "colorPalette": palette,
        "typography": typography,
        "spacing": sorted(spacing),
        "cornerRadii": sorted(radii),
        "namedStyles": _named_styles(inp.design.styles),
    }
    fragment = make_fragment(ContextSource.DESIGN, data, EXPECTED_FIELDS)
    if inp.index.stats.truncated:
        fragment = fragment.model_copy(
            update={"confidence": min(fragment.confidence, 60.0), "data": {**data, "truncated": True}}
        )
    return AnalysisOutcome.success(fragment)
