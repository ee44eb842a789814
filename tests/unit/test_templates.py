"""Tests for ticketgen.templates.engine."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from ticketgen.context.aggregator import ContextAggregator
from ticketgen.errors import RenderError, TemplateNotFound
from ticketgen.generation.variables import build_template_variables
from ticketgen.models import DesignData, FileContext, GenerationRequest
from ticketgen.templates import TemplateEngine, sections_for, template_id_for


def _variables(**request_fields):
    request_fields.setdefault("component_name", "Button")
    req = GenerationRequest(**request_fields)
    bundle = ContextAggregator().build_context(
        DesignData.from_request(req),
        FileContext(tech_stack=req.tech_stack_list, component_name=req.resolved_component_name),
    )
    return req, build_template_variables(req, bundle)


class TestLookup:

    def test_template_id(self):
        assert template_id_for("jira", "bug") == "jira/bug"

    def test_candidates_platform_folder(self):
        assert TemplateEngine().candidates("github/bug") == ["github/bug.md.j2", "github/default.md.j2"]

    def test_candidates_fallback_folder(self):
        assert TemplateEngine().candidates("linear/feature") == [
            "markdown/feature.md.j2", "markdown/default.md.j2",
        ]

    def test_sections_for_unknown_type_uses_component(self):
        assert sections_for("whatever") == sections_for("component")
        assert "steps_to_reproduce" in sections_for("bug")


class TestRender:

    @pytest.mark.parametrize("platform,heading", [
        ("jira", "h1. Implement Button Component"),
        ("github", "# Implement Button Component"),
        ("confluence", "h1. Implement Button Component"),
        ("notion", "# Implement Button Component"),
    ])
    def test_platforms(self, platform, heading):
        req, variables = _variables(platform=platform)
        content = TemplateEngine().render(template_id_for(platform, "component"), variables)
        assert content.startswith(heading)
        assert "Acceptance Criteria" in content
        assert "Button" in content

    def test_markdown_checklist(self):
        _, variables = _variables(platform="linear")
        content = TemplateEngine().render("linear/component", variables)
        assert "- [ ] Component matches the Figma design specifications" in content

    def test_github_bug_template(self):
        _, variables = _variables(platform="github", document_type="bug")
        content = TemplateEngine().render("github/bug", variables)
        assert "Steps to Reproduce" in content
        assert "Expected Behavior" in content

    def test_insights_section(self):
        _, variables = _variables(platform="github")
        variables["insights"] = "Hover state darkens by 10%."
        content = TemplateEngine().render("github/component", variables)
        assert "## AI-Enhanced Analysis" in content
        assert "Hover state darkens by 10%." in content

    def test_override_directory_wins(self, tmp_path):
        (tmp_path / "jira").mkdir()
        (tmp_path / "jira" / "default.md.j2").write_text("custom {{ component_name }}\n", encoding="utf-8")
        _, variables = _variables()
        assert TemplateEngine(tmp_path).render("jira/component", variables) == "custom Button\n"

    def test_missing_variable_is_render_error(self):
        engine = TemplateEngine()
        with pytest.raises(RenderError):
            engine.render("jira/component", {"title": "only a title"})
        assert engine.health_check().details["failures"] == 1

    def test_syntax_error_is_render_error(self, tmp_path):
        (tmp_path / "jira").mkdir()
        (tmp_path / "jira" / "default.md.j2").write_text("{% if %}\n", encoding="utf-8")
        with pytest.raises(RenderError):
            TemplateEngine(tmp_path).render("jira/component", {})

    def test_template_not_found(self):
        with patch.dict("ticketgen.templates.engine.PLATFORM_FOLDERS", {"nowhere": "nowhere"}):
            with pytest.raises(TemplateNotFound):
                TemplateEngine().render("nowhere/component", {})

    def test_health(self):
        report = TemplateEngine().health_check()
        assert report.status == "healthy"
        assert "markdown" in report.capabilities
