"""Shared types for context analyzers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ...errors import AnalysisError
from ...models import ContextFragment, ContextSource, DesignData, FileContext, is_populated
from ..figma_utils import NodeIndex


@dataclass(frozen=True)
class AnalysisInput:
    """Everything an analyzer may read. Analyzers must not mutate it."""

    design: DesignData
    file_context: FileContext
    index: NodeIndex


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of one analyzer: a fragment or an ``AnalysisError``."""

    source: ContextSource
    fragment: Optional[ContextFragment] = None
    error: Optional[AnalysisError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.fragment is not None

    @classmethod
    def success(cls, fragment: ContextFragment) -> "AnalysisOutcome":
        return cls(source=fragment.source, fragment=fragment)

    @classmethod
    def failure(cls, source: ContextSource, reason: str) -> "AnalysisOutcome":
        return cls(source=source, error=AnalysisError(source.value, reason))


Analyzer = Callable[[AnalysisInput], AnalysisOutcome]


def make_fragment(
    source: ContextSource,
    data: Dict[str, Any],
    expected: List[str],
    confidence: Optional[float] = None,
) -> ContextFragment:
    """Build a fragment, adding a ``"<field> missing"`` marker per empty expected field.

    Without an explicit confidence, it is the populated share of expected fields.
    """
    missing = [f"{name} missing" for name in expected if not is_populated(data.get(name))]
    if confidence is None:
        populated = len(expected) - len(missing)
        confidence = 100.0 * populated / len(expected) if expected else 0.0
    return ContextFragment(
        source=source,
        confidence=round(max(0.0, min(100.0, confidence)), 1),
        data=data,
        missing=missing,
        expected_fields=list(expected),
    )


def failed_fragment(source: ContextSource, reason: str, expected: List[str]) -> ContextFragment:
    """Zero-confidence stand-in for an analyzer that could not run."""
    return ContextFragment(
        source=source,
        confidence=0.0,
        data={},
        missing=[f"analysis failed: {reason}"],
        expected_fields=list(expected),
        error=reason,
    )
