"""Ticket templates and the engine that renders them."""

from .engine import (
    DOCUMENT_LABELS,
    SECTION_TITLES,
    TemplateEngine,
    sections_for,
    template_id_for,
)

__all__ = [
    "DOCUMENT_LABELS",
    "SECTION_TITLES",
    "TemplateEngine",
    "sections_for",
    "template_id_for",
]
