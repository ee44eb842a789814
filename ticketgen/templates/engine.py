"""Jinja2-backed ticket template engine.

Template ids have the form ``<platform>/<documentType>``. Lookup tries
``<folder>/<documentType>.md.j2`` then ``<folder>/default.md.j2``; platforms
without their own folder render through ``markdown/``. An optional override
directory is searched before the packaged templates.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from jinja2 import TemplateError as JinjaTemplateError
from jinja2 import TemplateNotFound as JinjaTemplateNotFound

from ..errors import RenderError, TemplateNotFound
from ..models import HealthReport

logger = logging.getLogger(__name__)

PACKAGED_TEMPLATE_DIR = Path(__file__).resolve().parent

PLATFORM_FOLDERS = {
    "jira": "jira",
    "github": "github",
    "confluence": "confluence",
}
FALLBACK_FOLDER = "markdown"

SECTION_TITLES: Dict[str, str] = {
    "summary": "Summary",
    "description": "Description",
    "user_stories": "User Stories",
    "requirements": "Technical Requirements",
    "steps_to_reproduce": "Steps to Reproduce",
    "expected_behavior": "Expected Behavior",
    "scope": "Scope",
    "acceptance_criteria": "Acceptance Criteria",
    "implementation_notes": "Implementation Notes",
}

# Sections rendered as checklists where the platform supports them
CHECKLIST_SECTIONS = {"acceptance_criteria"}

DOCUMENT_SECTIONS: Dict[str, List[str]] = {
    "component": ["summary", "description", "requirements", "acceptance_criteria", "implementation_notes"],
    "feature": ["summary", "description", "user_stories", "requirements", "acceptance_criteria"],
    "bug": ["summary", "description", "steps_to_reproduce", "expected_behavior", "acceptance_criteria"],
    "epic": ["summary", "description", "scope", "acceptance_criteria"],
    "documentation": ["summary", "description", "requirements", "implementation_notes"],
    "design-handoff": ["summary", "description", "requirements", "acceptance_criteria", "implementation_notes"],
    "api-spec": ["summary", "description", "requirements", "implementation_notes"],
}

DOCUMENT_LABELS: Dict[str, str] = {
    "component": "Component",
    "feature": "Feature",
    "bug": "Bug",
    "epic": "Epic",
    "documentation": "Documentation",
    "design-handoff": "Design Handoff",
    "api-spec": "API Specification",
}


def template_id_for(platform: str, document_type: str) -> str:
    return f"{platform}/{document_type}"


def sections_for(document_type: str) -> List[str]:
    """Ordered section names the template skeleton expects for a document type."""
    return list(DOCUMENT_SECTIONS.get(document_type, DOCUMENT_SECTIONS["component"]))


class TemplateEngine:
    """Renders ticket templates with Jinja2.

    Args:
        search_path: Extra template directory searched before the packaged one.
    """

    def __init__(self, search_path: Optional[Union[str, Path]] = None):
        paths = [str(PACKAGED_TEMPLATE_DIR)]
        if search_path:
            paths.insert(0, str(search_path))
        self._paths = paths
        self._env = Environment(
            loader=FileSystemLoader(paths),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._renders = 0
        self._failures = 0

    @property
    def available(self) -> bool:
        return True

    def candidates(self, template_id: str) -> List[str]:
        platform, _, document_type = template_id.partition("/")
        folder = PLATFORM_FOLDERS.get(platform, FALLBACK_FOLDER)
        names = []
        if document_type:
            names.append(f"{folder}/{document_type}.md.j2")
        names.append(f"{folder}/default.md.j2")
        return names

    def render(self, template_id: str, variables: Mapping[str, Any]) -> str:
        """Render ``template_id`` with ``variables``.

        Raises:
            TemplateNotFound: no candidate file exists.
            RenderError: the template failed (syntax error, undefined variable).
        """
        names = self.candidates(template_id)
        try:
            template = self._env.select_template(names)
        except JinjaTemplateNotFound as e:
            self._failures += 1
            raise TemplateNotFound(f"No template for {template_id!r} (tried {', '.join(names)})") from e
        except JinjaTemplateError as e:
            self._failures += 1
            raise RenderError(f"Template for {template_id!r} failed to load: {e}") from e

        try:
            content = template.render(**variables)
        except JinjaTemplateError as e:
            self._failures += 1
            raise RenderError(f"Template {template.name} failed to render: {e}") from e
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            self._failures += 1
            raise RenderError(f"Template {template.name} received bad variables: {e}") from e

        self._renders += 1
        logger.debug("Rendered %s (%d chars)", template.name, len(content))
        return content

    def health_check(self) -> HealthReport:
        return HealthReport(
            status="healthy",
            dependencies_present={"jinja2": True},
            capabilities=sorted(set(PLATFORM_FOLDERS) | {FALLBACK_FOLDER}),
            details={"searchPath": self._paths, "renders": self._renders, "failures": self._failures},
        )
