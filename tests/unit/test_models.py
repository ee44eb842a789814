"""Tests for ticketgen.models.

Covers:
- GenerationRequest parsing (camelCase/snake_case, case-insensitive enums)
- Request validation (subject required, tech stack, single-frame wrapping)
- Derived values (resolved component name, tech stack list)
- DesignData construction from a request
- Result immutability helpers
"""

from __future__ import annotations

import base64

import pytest
from pydantic import ValidationError as PydanticValidationError

from ticketgen.models import (
    ContextFragment,
    ContextSource,
    DesignData,
    DocumentType,
    GenerationRequest,
    GenerationResult,
    Platform,
    ResultMetadata,
    Screenshot,
)


class TestGenerationRequestParsing:

    def test_camel_case_payload(self, button_payload):
        req = GenerationRequest.model_validate(button_payload)
        assert req.component_name == "Button"
        assert req.platform is Platform.JIRA
        assert req.document_type is DocumentType.COMPONENT
        assert req.frame_data and req.frame_data[0]["name"] == "Primary Button"

    def test_snake_case_accepted(self):
        req = GenerationRequest(component_name="Card", document_type="feature")
        assert req.document_type is DocumentType.FEATURE

    @pytest.mark.parametrize("raw,expected", [
        ("JIRA", Platform.JIRA),
        (" GitHub ", Platform.GITHUB),
        ("azure_devops", Platform.AZURE_DEVOPS),
    ])
    def test_platform_case_insensitive(self, raw, expected):
        assert GenerationRequest(component_name="X", platform=raw).platform is expected

    def test_document_type_case_insensitive(self):
        req = GenerationRequest(component_name="X", documentType="Design_Handoff")
        assert req.document_type is DocumentType.DESIGN_HANDOFF

    def test_unsupported_platform_rejected(self):
        with pytest.raises(PydanticValidationError):
            GenerationRequest(component_name="X", platform="myspace")

    def test_subject_required(self):
        with pytest.raises(PydanticValidationError, match="must identify a component"):
            GenerationRequest(platform="jira")

    def test_blank_component_name_is_not_a_subject(self):
        with pytest.raises(PydanticValidationError):
            GenerationRequest(component_name="   ")

    def test_file_context_alone_is_a_subject(self):
        req = GenerationRequest(fileContext={"fileKey": "abc"})
        assert req.file_context.file_key == "abc"

    def test_single_frame_dict_wrapped(self):
        req = GenerationRequest(frameData={"name": "Hero", "type": "FRAME"})
        assert req.frame_data == [{"name": "Hero", "type": "FRAME"}]

    def test_empty_tech_stack_list_rejected(self):
        with pytest.raises(PydanticValidationError):
            GenerationRequest(component_name="X", tech_stack=["", "  "])

    def test_request_is_frozen(self):
        req = GenerationRequest(component_name="X")
        with pytest.raises(PydanticValidationError):
            req.component_name = "Y"


class TestDerivedValues:

    def test_resolved_name_prefers_explicit(self):
        req = GenerationRequest(component_name="Button", frame_data=[{"name": "Other"}])
        assert req.resolved_component_name == "Button"

    def test_resolved_name_from_enhanced_frames_first(self):
        req = GenerationRequest(
            frame_data=[{"name": "Plain"}],
            enhanced_frame_data=[{"name": "Enhanced"}],
        )
        assert req.resolved_component_name == "Enhanced"

    def test_resolved_name_default(self):
        req = GenerationRequest(component_id="1:2")
        assert req.resolved_component_name == "Component"

    def test_tech_stack_list_normalized(self):
        req = GenerationRequest(component_name="X", tech_stack=["React", " ", "TypeScript "])
        assert req.tech_stack_list == ["React", "TypeScript"]

    def test_tech_stack_string(self):
        req = GenerationRequest(component_name="X", tech_stack="Vue 3")
        assert req.tech_stack_list == ["Vue 3"]

    def test_presence_flags(self):
        req = GenerationRequest(component_name="X", screenshot="data:image/png;base64,AAAA")
        assert req.has_screenshot
        assert not req.has_frame_data
        assert not req.has_enhanced_frame_data


class TestDesignData:

    def test_from_request_wraps_frames(self, button_frame):
        req = GenerationRequest(component_name="Button", component_id="1:2", frame_data=[button_frame])
        design = DesignData.from_request(req)
        assert design.document["type"] == "SELECTION"
        assert design.document["children"] == [button_frame]
        assert design.enhanced is False
        assert design.reference is None

    def test_from_request_without_frames(self):
        design = DesignData.from_request(GenerationRequest(component_name="X"))
        assert design.document is None

    def test_enhanced_flag_and_screenshot_ref(self):
        req = GenerationRequest(enhanced_frame_data=[{"name": "A"}], screenshot="/tmp/shot.png")
        design = DesignData.from_request(req)
        assert design.enhanced is True
        assert design.reference == "/tmp/shot.png"

    def test_screenshot_data_url(self):
        shot = Screenshot(data=b"\x89PNG", format="PNG")
        url = shot.to_data_url()
        assert url.startswith("data:image/png;base64,")
        assert base64.b64decode(url.split(",", 1)[1]) == b"\x89PNG"

    def test_reference_prefers_explicit_ref(self):
        design = DesignData(screenshot=Screenshot(data=b"x"), screenshot_ref="/tmp/a.png")
        assert design.reference == "/tmp/a.png"


class TestResultModels:

    def test_with_metadata_returns_copy(self):
        result = GenerationResult(
            content="ticket",
            metadata=ResultMetadata(strategy_used="emergency", generation_type="emergency", generated_at="t"),
        )
        cached = result.with_metadata(cached=True)
        assert cached.metadata.cached is True
        assert result.metadata.cached is False
        assert cached.content == result.content

    def test_result_serializes_camel_case(self):
        result = GenerationResult(
            content="ticket",
            metadata=ResultMetadata(strategy_used="emergency", generation_type="emergency", generated_at="t"),
        )
        dumped = result.model_dump(by_alias=True)
        assert dumped["metadata"]["strategyUsed"] == "emergency"
        assert "generatedAt" in dumped["metadata"]

    def test_fragment_populated_fields(self):
        fragment = ContextFragment(
            source=ContextSource.UX,
            data={"a": [1], "b": [], "c": None},
            expected_fields=["a", "b", "c"],
        )
        assert fragment.populated_fields == ["a"]

    def test_fragment_confidence_bounds(self):
        with pytest.raises(PydanticValidationError):
            ContextFragment(source=ContextSource.UX, confidence=120)
