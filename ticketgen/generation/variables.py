"""Template variables derived from a request and its ContextBundle.

Every variable the packaged templates reference is always present. Where the
design data is silent, literal defaults are used and ``design.defaults_used``
is set so the rendered ticket says so.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

from ..models import ContextBundle, ContextSource, GenerationRequest
from ..templates import DOCUMENT_LABELS, SECTION_TITLES, sections_for
from ..templates.engine import CHECKLIST_SECTIONS

DEFAULT_COLORS = ["#667EEA"]
DEFAULT_FONTS = ["Inter", "SF Pro Display"]
DEFAULT_FONT_SIZES = [14, 16, 18, 24, 32]
DEFAULT_PRIORITY = "Medium"
DEFAULT_STORY_POINTS = 3

ACCEPTANCE_CRITERIA = [
    "Component matches the Figma design specifications",
    "Responsive behavior works on mobile, tablet and desktop breakpoints",
    "Meets WCAG 2.1 AA accessibility standards",
    "Unit test coverage above 80%",
    "Code follows the team's coding standards",
    "Storybook story documents all variants",
    "Verified in current Chrome, Firefox, Safari and Edge",
]

VALID_PRIORITIES = ("Low", "Medium", "High", "Critical")

# Sections whose AI value is free text rather than a list
TEXT_SECTIONS = {"summary", "description", "expected_behavior"}


def figma_url(request: GenerationRequest) -> Optional[str]:
    ctx = request.file_context
    if not ctx or not ctx.file_key:
        return None
    url = f"https://www.figma.com/design/{ctx.file_key}"
    if request.component_id:
        url += f"?node-id={request.component_id.replace(':', '-')}"
    return url


def _design_tokens(bundle: ContextBundle) -> Dict[str, Any]:
    design = bundle.data(ContextSource.DESIGN)
    colors = [c["hex"] for c in design.get("colorPalette", [])[:6] if c.get("hex")]
    typography = design.get("typography") or {}
    fonts = list(typography.get("fontFamilies", []))[:3]
    sizes = list(typography.get("fontSizes", []))
    return {
        "colors": colors or DEFAULT_COLORS,
        "fonts": fonts or DEFAULT_FONTS,
        "font_sizes": sizes or DEFAULT_FONT_SIZES,
        "spacing": list(design.get("spacing", []))[:8],
        "radii": list(design.get("cornerRadii", []))[:4],
        "defaults_used": not (colors and fonts and sizes),
    }


def default_section_values(request: GenerationRequest, bundle: ContextBundle) -> Dict[str, Union[str, List[str]]]:
    """Section content built without AI, from request fields and context only."""
    name = request.resolved_component_name
    label = DOCUMENT_LABELS.get(request.document_type.value, "Component").lower()
    stack = ", ".join(request.tech_stack_list)

    business = bundle.data(ContextSource.BUSINESS)
    technical = bundle.data(ContextSource.TECHNICAL)
    ux = bundle.data(ContextSource.UX)
    complexity = technical.get("complexity") or {}
    function = business.get("primaryFunction")
    industry = (business.get("industryDomain") or {}).get("domain")

    description = f"Build the {name} {label} as shown in the selected Figma frame using {stack}."
    if function:
        description += f" It serves as a {function}"
        description += f" in a {industry} product." if industry else "."

    requirements = [
        f"Implement {name} using {stack}",
        "Match the design tokens listed under Design Specifications",
        "Responsive layout across mobile, tablet and desktop breakpoints",
    ]
    if technical.get("recommendedPattern"):
        requirements.append(f"Follow the {technical['recommendedPattern']} pattern")
    interactive = ux.get("interactiveElements") or []
    if interactive:
        requirements.append(
            f"Hover, focus, active and disabled states for {len(interactive)} interactive element(s)"
        )

    notes = []
    if complexity:
        notes.append(
            f"Estimated complexity: {complexity['level']} (~{complexity['estimatedHours']}h, "
            f"{technical.get('elementCount')} design elements)"
        )
    if technical.get("layoutStrategy"):
        notes.append(f"Layout: {technical['layoutStrategy']}")
    notes.append("Use semantic HTML and keyboard-accessible controls")

    purpose = function or "complete my task"
    return {
        "summary": f"Implement the {name} {label} from the Figma design.",
        "description": description,
        "requirements": requirements,
        "acceptance_criteria": list(ACCEPTANCE_CRITERIA),
        "implementation_notes": notes,
        "user_stories": [f"As a user, I want to use the {name} so that I can {purpose}"],
        "steps_to_reproduce": [
            f"Open the screen containing {name}",
            "Compare the implementation with the Figma frame",
            "Note the visual or behavioral difference",
        ],
        "expected_behavior": f"{name} renders and behaves as specified in the Figma design.",
        "scope": [f"{name} and its variants", "Design token alignment", "Tests and documentation"],
    }


def _coerce_section(value: Any) -> Optional[Union[str, List[str]]]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        items = [str(v).strip() for v in value if str(v).strip()]
        return items or None
    return None


def build_template_variables(
    request: GenerationRequest,
    bundle: ContextBundle,
    section_overrides: Optional[Mapping[str, Any]] = None,
    insights: Optional[str] = None,
) -> Dict[str, Any]:
    """Assemble the variable map for ``TemplateEngine.render``.

    ``section_overrides`` (e.g. parsed AI output) replace default section
    values; unusable values fall back to the defaults.
    """
    overrides = dict(section_overrides or {})
    values = default_section_values(request, bundle)
    sections = []
    for section in sections_for(request.document_type.value):
        value = _coerce_section(overrides.get(section)) or values[section]
        sections.append({
            "name": section,
            "title": SECTION_TITLES[section],
            "text": value if isinstance(value, str) else "",
            "items": value if isinstance(value, list) else [],
            "checklist": section in CHECKLIST_SECTIONS,
        })

    technical = bundle.data(ContextSource.TECHNICAL)
    complexity = technical.get("complexity") or {}
    business = bundle.data(ContextSource.BUSINESS)
    industry = business.get("industryDomain") or {}
    ux = bundle.data(ContextSource.UX)

    priority = overrides.get("priority")
    if priority not in VALID_PRIORITIES:
        priority = "High" if complexity.get("level") == "enterprise" else DEFAULT_PRIORITY
    story_points = overrides.get("story_points")
    if not isinstance(story_points, int) or isinstance(story_points, bool) or story_points <= 0:
        story_points = complexity.get("storyPoints", DEFAULT_STORY_POINTS)

    name = request.resolved_component_name
    label = DOCUMENT_LABELS.get(request.document_type.value, "Component")
    title = overrides.get("title")
    if not isinstance(title, str) or not title.strip():
        title = f"Implement {name} {label}"

    return {
        "title": title.strip(),
        "component_name": name,
        "document_label": label,
        "platform": request.platform.value,
        "priority": priority,
        "story_points": story_points,
        "complexity": complexity.get("level", "unknown"),
        "tech_stack": request.tech_stack_list,
        "sections": sections,
        "design": _design_tokens(bundle),
        "industry": industry.get("domain"),
        "regulations": list(industry.get("regulations", [])),
        "accessibility_notes": list(ux.get("accessibilityNotes", []))[:5],
        "figma_url": figma_url(request),
        "insights": insights,
        "instructions": request.instructions,
    }
