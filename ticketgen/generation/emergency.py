"""Built-in ticket text used when no AI tier can run.

``render_emergency_ticket`` substitutes request fields into a literal
template with no external calls. ``LAST_RESORT_CONTENT`` is returned by the
cascade if even that fails.
"""

from __future__ import annotations

from ..models import DEFAULT_COMPONENT_NAME, DEFAULT_TECH_STACK, GenerationRequest
from ..templates import DOCUMENT_LABELS

EMERGENCY_FOOTER = (
    "---\n"
    "⚠️ *Generated via Emergency Strategy fallback - AI services were unavailable*\n"
    "*This is a functional template with intelligent defaults*"
)

EMERGENCY_TEMPLATE = """\
# {component_name} Implementation

## Description
Implement the {component_name} {document_label} according to design specifications.

## Technical Requirements
- **Technology Stack**: {tech_stack}
- **Document Type**: {document_type}
- **Component Type**: UI Component

## Acceptance Criteria
- [ ] Component matches design specifications exactly
- [ ] Component is responsive across all breakpoints (mobile, tablet, desktop)
- [ ] Component passes WCAG 2.1 AA accessibility compliance
- [ ] Unit tests provide adequate coverage (>80%)
- [ ] Code follows team standards and conventions
- [ ] Component is documented in Storybook
- [ ] Cross-browser compatibility verified

## Implementation Notes
- Follow established design system patterns
- Use semantic HTML structure
- Implement proper keyboard navigation
- Ensure screen reader compatibility
- Add proper focus indicators
{instructions}
## Resources
- Design Reference: See Figma file
- Component Library: Check existing patterns
- Accessibility Guide: Follow WCAG 2.1 standards
- Testing Requirements: Unit + integration tests

{footer}
"""

LAST_RESORT_CONTENT = """\
# Component Implementation

## Description
Implement the selected component according to the Figma design specifications.

## Acceptance Criteria
- [ ] Component matches design specifications
- [ ] Component is responsive and accessible (WCAG 2.1 AA)
- [ ] Component has unit tests

---
⚠️ *Ticket generation failed; this is a static placeholder. Please regenerate.*
"""


def render_emergency_ticket(request: GenerationRequest) -> str:
    component_name = request.resolved_component_name or DEFAULT_COMPONENT_NAME
    document_type = request.document_type.value
    instructions = ""
    if request.instructions:
        instructions = f"\n## Additional Instructions\n{request.instructions}\n"
    return EMERGENCY_TEMPLATE.format(
        component_name=component_name,
        document_label=DOCUMENT_LABELS.get(document_type, "Component").lower(),
        document_type=document_type,
        tech_stack=", ".join(request.tech_stack_list) or DEFAULT_TECH_STACK,
        instructions=instructions,
        footer=EMERGENCY_FOOTER,
    )
