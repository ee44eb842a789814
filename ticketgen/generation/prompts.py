"""Prompt templates for the AI-backed generation tiers.

Guided tier: the model fills the template skeleton's sections as JSON; the
template engine renders the final ticket.
Hybrid tier: the model adds visual/implementation insights on top of a
rendered template.
Pure tier: the model writes the whole ticket from the context summary.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from ..models import ContextBundle, ContextSource, GenerationRequest

TICKET_SYSTEM_PROMPT = """\
You are a senior frontend engineer writing implementation tickets from Figma \
designs. Stay grounded in the design data you are given: never invent colors, \
copy, or interactions that the data does not show. Keep requirements concrete \
and testable."""

GUIDED_USER_PROMPT = """\
Fill the sections of a {document_label} ticket for the component "{component_name}".

## Project
- Platform: {platform}
- Tech stack: {tech_stack}
- Context confidence: {confidence}/100

## Design Context
{context_summary}

## Template Sections
Return a single JSON object with exactly these keys:
{section_schema}

Use a string for "summary", "description" and "expected_behavior"; use an \
array of short strings for every other section. You may also include \
"title" (string), "priority" (Low | Medium | High | Critical) and \
"story_points" (integer).
{instructions}
Keep the whole answer under roughly {max_words} words. \
No markdown, no explanation, no code fences. Just the JSON object."""

HYBRID_USER_PROMPT = """\
A {document_label} ticket for "{component_name}" ({tech_stack}) has been \
drafted from a template. Review the visual context and add what the template \
cannot know.

## Design Context
{context_summary}

## Frame Structure
{frame_summary}

## Draft Ticket (excerpt)
{draft_excerpt}

Write a short section in {platform} markup covering:
1. Visual details an implementer could miss (states, spacing, alignment).
2. Implementation risks and complexity drivers.
3. Any accessibility concerns visible in the design.
{instructions}
Keep it under roughly {max_words} words. Do not repeat the draft."""

PURE_USER_PROMPT = """\
Write a complete {document_label} ticket in {platform} markup for the \
component "{component_name}" built with {tech_stack}.

## Design Context
{context_summary}

Include a title, description, technical requirements, acceptance criteria \
(as a checklist) and implementation notes.
{instructions}
Keep it under roughly {max_words} words."""


def _tokens_to_words(max_tokens: int) -> int:
    return max(100, int(max_tokens * 0.75))


def summarize_context(bundle: ContextBundle, limit: int = 8) -> str:
    """Compact plain-text rendering of a ContextBundle for prompts."""
    lines: List[str] = []

    design = bundle.data(ContextSource.DESIGN)
    palette = [c.get("hex") for c in design.get("colorPalette", [])][:limit]
    if palette:
        lines.append(f"- Colors: {', '.join(palette)}")
    typography = design.get("typography") or {}
    if typography:
        fonts = ", ".join(typography.get("fontFamilies", [])[:3]) or "unknown"
        sizes = "/".join(str(s) for s in typography.get("fontSizes", [])[:limit])
        lines.append(f"- Typography: {fonts} ({sizes}px)")
    if design.get("spacing"):
        lines.append(f"- Spacing: {', '.join(str(s) for s in design['spacing'][:limit])}px")

    business = bundle.data(ContextSource.BUSINESS)
    industry = business.get("industryDomain") or {}
    if industry:
        lines.append(f"- Industry: {industry.get('domain')} (regulations: {', '.join(industry.get('regulations', []))})")
    if business.get("primaryFunction"):
        lines.append(f"- Purpose: {business['primaryFunction']}")
    if business.get("userActions"):
        lines.append(f"- User actions: {', '.join(business['userActions'])}")

    technical = bundle.data(ContextSource.TECHNICAL)
    complexity = technical.get("complexity") or {}
    if complexity:
        lines.append(
            f"- Complexity: {complexity.get('level')} ({technical.get('elementCount')} elements, "
            f"depth {technical.get('nestingDepth')}, layout {technical.get('layoutStrategy') or 'unknown'})"
        )
    if technical.get("recommendedPattern"):
        lines.append(f"- Suggested pattern: {technical['recommendedPattern']}")

    ux = bundle.data(ContextSource.UX)
    interactive = ux.get("interactiveElements") or []
    if interactive:
        names = ", ".join(f"{i['name']} ({i['kind']})" for i in interactive[:limit])
        lines.append(f"- Interactive elements: {names}")
    if ux.get("contentCopy"):
        copy = "; ".join(ux["contentCopy"][:limit])
        lines.append(f"- Visible copy: {copy}")
    for note in (ux.get("accessibilityNotes") or [])[:3]:
        lines.append(f"- Accessibility: {note}")

    if bundle.debug_markers:
        lines.append(f"- Unknown: {', '.join(m.split('] ', 1)[-1] for m in bundle.debug_markers[:limit])}")
    return "\n".join(lines) if lines else "- No design data available for this selection."


def summarize_frames(frames: List[Dict[str, Any]], max_chars: int = 2000) -> str:
    """Names/types outline of the top two levels of enhanced frame data."""
    lines: List[str] = []
    for frame in frames:
        lines.append(f"- {frame.get('name', 'unnamed')} [{frame.get('type', '?')}]")
        for child in (frame.get("children") or [])[:20]:
            if isinstance(child, dict):
                lines.append(f"  - {child.get('name', 'unnamed')} [{child.get('type', '?')}]")
    text = "\n".join(lines) or "- (no structured frame data)"
    return text[:max_chars]


def _instructions_block(request: GenerationRequest) -> str:
    if not request.instructions:
        return ""
    return f"\nAdditional instructions from the requester: {request.instructions}\n"


def build_guided_prompt(
    request: GenerationRequest,
    bundle: ContextBundle,
    sections: List[str],
    document_label: str,
    max_tokens: int,
) -> str:
    schema = json.dumps({name: "..." for name in sections}, indent=2)
    return GUIDED_USER_PROMPT.format(
        document_label=document_label,
        component_name=request.resolved_component_name,
        platform=request.platform.value,
        tech_stack=", ".join(request.tech_stack_list),
        confidence=round(bundle.overall_confidence),
        context_summary=summarize_context(bundle),
        section_schema=schema,
        instructions=_instructions_block(request),
        max_words=_tokens_to_words(max_tokens),
    )


def build_hybrid_prompt(
    request: GenerationRequest,
    bundle: ContextBundle,
    draft: str,
    document_label: str,
    max_tokens: int,
) -> str:
    return HYBRID_USER_PROMPT.format(
        document_label=document_label,
        component_name=request.resolved_component_name,
        tech_stack=", ".join(request.tech_stack_list),
        platform=request.platform.value,
        context_summary=summarize_context(bundle),
        frame_summary=summarize_frames(request.enhanced_frame_data or request.frame_data or []),
        draft_excerpt=draft[:1500],
        instructions=_instructions_block(request),
        max_words=_tokens_to_words(max_tokens) // 2,
    )


def build_pure_prompt(
    request: GenerationRequest,
    bundle: ContextBundle,
    document_label: str,
    max_tokens: int,
) -> str:
    return PURE_USER_PROMPT.format(
        document_label=document_label,
        platform=request.platform.value,
        component_name=request.resolved_component_name,
        tech_stack=", ".join(request.tech_stack_list),
        context_summary=summarize_context(bundle),
        instructions=_instructions_block(request),
        max_words=_tokens_to_words(max_tokens),
    )
