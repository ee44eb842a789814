"""Tests for ticketgen.context.aggregator.

Covers:
- Bundle construction from request frames
- Confidence weighting and monotonicity
- Malformed input (empty, non-mapping, cyclic, over-deep trees)
- Analyzer failure isolation
- Memoization of identical input
"""

from __future__ import annotations

from unittest.mock import patch

from ticketgen.context.aggregator import ContextAggregator, design_data_digest, overall_confidence
from ticketgen.context.analyzers.base import AnalysisOutcome
from ticketgen.models import (
    DEFAULT_COMPONENT_NAME,
    ContextFragment,
    ContextSource,
    DesignData,
    FileContext,
    GenerationRequest,
)


def _ctx() -> FileContext:
    return FileContext(tech_stack=["React"], component_name="Button")


class TestOverallConfidence:

    def test_weighted_by_populated_fields(self):
        fragments = {
            "a": ContextFragment(source=ContextSource.DESIGN, confidence=100,
                                 data={"x": 1, "y": 1}, expected_fields=["x", "y"]),
            "b": ContextFragment(source=ContextSource.UX, confidence=40,
                                 data={"x": 1}, expected_fields=["x", "y"]),
        }
        # (100*2 + 40*1) / 3
        assert overall_confidence(fragments) == 80.0

    def test_nothing_populated(self):
        fragments = {"a": ContextFragment(source=ContextSource.UX, confidence=90, expected_fields=["x"])}
        assert overall_confidence(fragments) == 0.0


class TestBuildContext:

    def test_button_frame_bundle(self, button_frame):
        req = GenerationRequest(component_name="Button", frame_data=[button_frame])
        bundle = ContextAggregator().build_context(DesignData.from_request(req), _ctx())
        assert set(bundle.fragments) == {"design", "business", "technical", "ux"}
        assert bundle.has_frame_data
        assert not bundle.has_enhanced_frame_data
        assert not bundle.has_screenshot
        assert bundle.component_name == "Button"
        assert bundle.overall_confidence > 80
        assert "[business] industryDomain missing" in bundle.debug_markers

    def test_single_fetched_node_is_analyzed(self, button_frame):
        bundle = ContextAggregator().build_context(DesignData(document=button_frame), _ctx())
        assert bundle.has_frame_data
        assert bundle.overall_confidence > 0
        assert bundle.fragments["technical"].data["elementCount"] > 0

    def test_default_component_name(self, button_frame):
        bundle = ContextAggregator().build_context(DesignData(document=button_frame), FileContext())
        assert bundle.component_name == DEFAULT_COMPONENT_NAME

    def test_enhanced_and_screenshot_flags(self, button_frame):
        req = GenerationRequest(enhanced_frame_data=[button_frame], screenshot="data:image/png;base64,AAAA")
        bundle = ContextAggregator().build_context(DesignData.from_request(req), _ctx())
        assert bundle.has_frame_data
        assert bundle.has_enhanced_frame_data
        assert bundle.has_screenshot
        assert bundle.screenshot == "data:image/png;base64,AAAA"

    def test_empty_design_is_low_confidence(self):
        bundle = ContextAggregator().build_context(None)
        assert not bundle.has_frame_data
        assert bundle.overall_confidence <= 30
        assert "[design] colorPalette missing" in bundle.debug_markers

    def test_full_bundle_at_least_as_confident_as_empty(self, button_frame):
        agg = ContextAggregator()
        full = agg.build_context(DesignData(document=button_frame), _ctx())
        empty = agg.build_context(DesignData(), _ctx())
        assert full.overall_confidence >= empty.overall_confidence

    def test_non_mapping_document(self):
        bundle = ContextAggregator().build_context(DesignData(document="garbage"))  # type: ignore[arg-type]
        assert not bundle.has_frame_data
        assert len(bundle.fragments) == 4

    def test_cyclic_document(self):
        node = {"id": "1", "name": "Loop", "type": "FRAME", "children": []}
        node["children"].append(node)
        design = DesignData(document=node)
        assert design_data_digest(design, _ctx()) is None
        bundle = ContextAggregator().build_context(design, _ctx())
        assert bundle.fragments["technical"].data["elementCount"] == 1

    def test_over_deep_document_truncated(self):
        root = {"id": "0", "type": "FRAME", "children": []}
        current = root
        for i in range(1, 500):
            child = {"id": str(i), "type": "FRAME", "children": []}
            current["children"].append(child)
            current = child
        bundle = ContextAggregator(max_depth=32).build_context(DesignData(document=root), _ctx())
        technical = bundle.fragments["technical"]
        assert technical.data["truncated"] is True
        assert technical.data["elementCount"] == 33
        assert technical.confidence <= 60.0


class TestFailureIsolation:

    def test_raising_analyzer_becomes_failed_fragment(self, button_frame):
        def boom(inp):
            raise RuntimeError("kaboom")

        with patch.dict("ticketgen.context.aggregator.ANALYZERS", {ContextSource.UX: boom}):
            bundle = ContextAggregator().build_context(DesignData(document=button_frame), _ctx())
        ux = bundle.fragments["ux"]
        assert ux.confidence == 0.0
        assert "kaboom" in ux.error
        assert bundle.fragments["design"].confidence == 100.0

    def test_failure_outcome_becomes_failed_fragment(self, button_frame):
        def failing(inp):
            return AnalysisOutcome.failure(ContextSource.BUSINESS, "no data")

        with patch.dict("ticketgen.context.aggregator.ANALYZERS", {ContextSource.BUSINESS: failing}):
            bundle = ContextAggregator().build_context(DesignData(document=button_frame), _ctx())
        business = bundle.fragments["business"]
        assert business.error == "no data"
        assert "[business] analysis failed: no data" in bundle.debug_markers


class TestMemo:

    def test_identical_input_reuses_bundle(self, button_frame):
        agg = ContextAggregator()
        first = agg.build_context(DesignData(document=button_frame), _ctx())
        second = agg.build_context(DesignData(document=dict(button_frame)), _ctx())
        assert second.model_dump() == first.model_dump()
        assert agg.health_check().details == {"memoHits": 1, "memoMisses": 1}

    def test_different_context_not_shared(self, button_frame):
        agg = ContextAggregator()
        a = agg.build_context(DesignData(document=button_frame), _ctx())
        b = agg.build_context(DesignData(document=button_frame), FileContext(tech_stack=["Vue"]))
        assert a is not b

    def test_memo_bounded(self, button_frame):
        agg = ContextAggregator(memo_capacity=2)
        for name in ("A", "B", "C"):
            agg.build_context(DesignData(document={**button_frame, "name": name}), _ctx())
        assert agg.health_check().cache_size == 2
        agg.clear()
        assert agg.health_check().cache_size == 0

    def test_screenshot_not_shared_between_requests(self, button_frame):
        agg = ContextAggregator()
        first = agg.build_context(DesignData(document=button_frame, screenshot_ref="data:image/png;base64,AAAA"), _ctx())
        second = agg.build_context(DesignData(document=button_frame, screenshot_ref="data:image/png;base64,BBBB"), _ctx())
        assert agg.health_check().details["memoHits"] == 1
        assert first.screenshot == "data:image/png;base64,AAAA"
        assert second.screenshot == "data:image/png;base64,BBBB"
        assert second.has_screenshot

    def test_memo_hit_carries_request_screenshot(self, button_frame):
        agg = ContextAggregator()
        agg.build_context(DesignData(document=button_frame, screenshot_ref="data:image/png;base64,AAAA"), _ctx())
        again = agg.build_context(DesignData(document=button_frame, screenshot_ref="data:image/png;base64,AAAA"), _ctx())
        assert again.screenshot == "data:image/png;base64,AAAA"
