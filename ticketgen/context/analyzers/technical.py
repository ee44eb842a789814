"""Technical-complexity estimation for the selected component."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, List, Optional

from ...models import ContextSource
from ..figma_utils import is_interactive
from .base import AnalysisInput, AnalysisOutcome, make_fragment

EXPECTED_FIELDS = ["elementCount", "nestingDepth", "layoutStrategy", "framework", "complexity"]

# Element-count thresholds separating simple / medium / complex / enterprise
ELEMENT_THRESHOLDS = {"low": 5, "medium": 15, "high": 30}

COMPLEXITY_LEVELS = ["simple", "medium", "complex", "enterprise"]

STORY_POINTS = {"simple": 2, "medium": 3, "complex": 5, "enterprise": 8}
ESTIMATED_HOURS = {"simple": 4, "medium": 8, "complex": 16, "enterprise": 32}

ARCHITECTURE_PATTERNS: Dict[str, Dict[str, str]] = {
    "react": {
        "simple": "functional-components",
        "medium": "custom-hooks-pattern",
        "complex": "component-composition",
        "enterprise": "feature-based-architecture",
    },
    "vue": {
        "simple": "single-file-components",
        "medium": "composables-pattern",
        "complex": "store-modules",
        "enterprise": "micro-frontend",
    },
    "angular": {
        "simple": "component-service",
        "medium": "feature-modules",
        "complex": "ngrx-state-management",
        "enterprise": "domain-driven-design",
    },
}

_FRAMEWORK_ALIASES = {
    "react": "react", "next": "react", "nextjs": "react", "react native": "react",
    "vue": "vue", "nuxt": "vue",
    "angular": "angular",
    "svelte": "svelte", "sveltekit": "svelte",
}


def detect_framework(tech_stack: List[str]) -> Optional[str]:
    joined = " ".join(tech_stack).lower()
    for alias, framework in _FRAMEWORK_ALIASES.items():
        if alias in joined:
            return framework
    return None


def complexity_level(element_count: int, interactive_count: int, depth: int) -> str:
    """Bucket by element count, bumped one level for heavy interactivity or deep nesting."""
    if element_count <= ELEMENT_THRESHOLDS["low"]:
        level = 0
    elif element_count <= ELEMENT_THRESHOLDS["medium"]:
        level = 1
    elif element_count <= ELEMENT_THRESHOLDS["high"]:
        level = 2
    else:
        level = 3
    if interactive_count > 5 or depth > 8:
        level = min(level + 1, 3)
    return COMPLEXITY_LEVELS[level]


def _layout_strategy(modes: Counter, absolute_children: int) -> Optional[str]:
    auto = modes.get("HORIZONTAL", 0) + modes.get("VERTICAL", 0)
    if modes.get("GRID"):
        return "grid"
    if auto and absolute_children:
        return "mixed"
    if modes.get("HORIZONTAL") and modes.get("VERTICAL"):
        return "flex-nested"
    if modes.get("HORIZONTAL"):
        return "flex-row"
    if modes.get("VERTICAL"):
        return "flex-column"
    if absolute_children:
        return "absolute"
    return None


def analyze_technical(inp: AnalysisInput) -> AnalysisOutcome:
    index = inp.index
    framework = detect_framework(inp.file_context.tech_stack)

    data: Dict[str, Any] = {
        "elementCount": None,
        "nestingDepth": None,
        "layoutStrategy": None,
        "framework": framework,
        "complexity": None,
        "techStack": list(inp.file_context.tech_stack),
    }

    if len(index):
        types: Counter = Counter()
        modes: Counter = Counter()
        absolute = 0
        interactive = 0
        for node, _depth in index.nodes:
            types[str(node.get("type", "UNKNOWN"))] += 1
            mode = node.get("layoutMode")
            if isinstance(mode, str) and mode != "NONE":
                modes[mode] += 1
            elif node.get("children") and node.get("type") in ("FRAME", "GROUP", "COMPONENT", "INSTANCE"):
                absolute += 1
            if is_interactive(node):
                interactive += 1

        depth = index.stats.max_depth_seen
        level = complexity_level(len(index), interactive, depth)
        pattern = ARCHITECTURE_PATTERNS.get(framework or "", {}).get(level, "component-based")
        data.update({
            "elementCount": len(index),
            "nestingDepth": depth,
            "layoutStrategy": _layout_strategy(modes, absolute),
            "complexity": {
                "level": level,
                "storyPoints": STORY_POINTS[level],
                "estimatedHours": ESTIMATED_HOURS[level],
                "interactiveElements": interactive,
                "componentInstances": types.get("INSTANCE", 0) + types.get("COMPONENT", 0),
            },
            "nodeTypes": dict(types),
            "recommendedPattern": pattern,
        })
        if index.stats.truncated:
            data["truncated"] = True

    fragment = make_fragment(ContextSource.TECHNICAL, data, EXPECTED_FIELDS)
    if index.stats.truncated:
        fragment = fragment.model_copy(update={"confidence": min(fragment.confidence, 60.0)})
    return AnalysisOutcome.success(fragment)
