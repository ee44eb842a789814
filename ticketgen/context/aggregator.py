"""Context aggregator.

Runs every analyzer independently over one design selection and merges the
fragments into a ``ContextBundle``. Aggregation is total: an empty or
malformed document yields a low-confidence bundle with explicit ``missing``
markers, and a failing analyzer becomes a zero-confidence fragment.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict
from typing import Dict, Optional

from ..models import (
    DEFAULT_COMPONENT_NAME,
    ContextBundle,
    ContextFragment,
    ContextSource,
    DesignData,
    FileContext,
    HealthReport,
)
from .analyzers import ANALYZERS, EXPECTED_FIELDS, AnalysisInput, AnalysisOutcome, failed_fragment
from .figma_utils import DEFAULT_MAX_DEPTH, NodeIndex

logger = logging.getLogger(__name__)


def overall_confidence(fragments: Dict[str, ContextFragment]) -> float:
    """Weighted mean of fragment confidences.

    A fragment's weight is the number of its expected fields that were
    actually populated, so an analyzer with nothing to go on contributes
    nothing.
    """
    total_weight = 0
    weighted = 0.0
    for fragment in fragments.values():
        weight = len(fragment.populated_fields)
        total_weight += weight
        weighted += fragment.confidence * weight
    if total_weight == 0:
        return 0.0
    return round(weighted / total_weight, 1)


def design_data_digest(design: DesignData, file_context: FileContext) -> Optional[str]:
    """SHA-256 of the analysis inputs, or None if they cannot be serialized."""
    payload = {
        "document": design.document,
        "styles": design.styles,
        "hasScreenshot": design.reference is not None,
        "enhanced": design.enhanced,
        "fileContext": file_context.model_dump(mode="json"),
    }
    try:
        encoded = json.dumps(payload, sort_keys=True, default=str, separators=(",", ":"))
    except (TypeError, ValueError, RecursionError):
        # Cyclic or otherwise unserializable input; analyze without memoizing
        return None
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class ContextAggregator:
    """Builds ContextBundles, memoizing repeated analysis of identical input.

    The memo is FIFO-bounded and lives as long as the aggregator.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH, memo_capacity: int = 128):
        self._max_depth = max_depth
        self._memo_capacity = memo_capacity
        self._memo: "OrderedDict[str, ContextBundle]" = OrderedDict()
        self._hits = 0
        self._misses = 0

    def build_context(
        self,
        design: Optional[DesignData],
        file_context: Optional[FileContext] = None,
    ) -> ContextBundle:
        design = design if design is not None else DesignData()
        file_context = file_context or FileContext()

        digest = design_data_digest(design, file_context)
        if digest is not None and digest in self._memo:
            self._hits += 1
            return self._memo[digest].model_copy(update={"screenshot": design.reference})
        self._misses += 1

        bundle = self._analyze(design, file_context)

        if digest is not None:
            # Memoized without the image; each request carries its own
            self._memo[digest] = bundle.model_copy(update={"screenshot": None})
            while len(self._memo) > self._memo_capacity:
                self._memo.popitem(last=False)
        return bundle

    def _analyze(self, design: DesignData, file_context: FileContext) -> ContextBundle:
        document = design.document if isinstance(design.document, dict) else None
        if design.document is not None and document is None:
            logger.warning(
                "Design document is %s, not a mapping; analyzing as empty",
                type(design.document).__name__,
            )
        index = NodeIndex.build(document, max_depth=self._max_depth)
        if index.stats.truncated:
            logger.warning("Design tree deeper than %d levels; traversal truncated", self._max_depth)
        if index.stats.cycles:
            logger.warning("Design tree contains %d repeated node references", index.stats.cycles)

        inp = AnalysisInput(design=design, file_context=file_context, index=index)
        fragments: Dict[str, ContextFragment] = {}
        for source, analyzer in ANALYZERS.items():
            outcome = self._run(source, analyzer, inp)
            if outcome.ok:
                fragments[source.value] = outcome.fragment
            else:
                logger.warning("Analyzer %s failed: %s", source.value, outcome.error)
                fragments[source.value] = failed_fragment(
                    source, outcome.error.reason, EXPECTED_FIELDS[source]
                )

        markers = [
            f"[{fragment.source.value}] {marker}"
            for fragment in fragments.values()
            for marker in fragment.missing
        ]
        has_frames = bool(index.nodes)
        bundle = ContextBundle(
            fragments=fragments,
            screenshot=design.reference,
            has_frame_data=has_frames,
            has_enhanced_frame_data=design.enhanced and has_frames,
            has_screenshot=design.reference is not None,
            overall_confidence=overall_confidence(fragments),
            debug_markers=markers,
            component_name=file_context.component_name or DEFAULT_COMPONENT_NAME,
        )
        logger.debug(
            "Context built: confidence=%.1f markers=%d nodes=%d",
            bundle.overall_confidence, len(markers), len(index),
        )
        return bundle

    @staticmethod
    def _run(source: ContextSource, analyzer, inp: AnalysisInput) -> AnalysisOutcome:
        try:
            return analyzer(inp)
        except Exception as e:  # analyzer bug; keep the other fragments
            logger.error("Analyzer %s raised", source.value, exc_info=True)
            return AnalysisOutcome.failure(source, f"{type(e).__name__}: {e}")

    def clear(self) -> None:
        self._memo.clear()

    def health_check(self) -> HealthReport:
        return HealthReport(
            status="healthy",
            dependencies_present={},
            cache_size=len(self._memo),
            capabilities=[source.value for source in ANALYZERS],
            details={"memoHits": self._hits, "memoMisses": self._misses},
        )
