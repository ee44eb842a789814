"""Context analyzers.

Each analyzer takes an ``AnalysisInput`` and returns an ``AnalysisOutcome``.
``ANALYZERS`` is the fixed set run by the aggregator, in report order.
"""

from __future__ import annotations

from typing import Dict, List

from ...models import ContextSource
from . import business, design_tokens, technical, ux
from .base import AnalysisInput, AnalysisOutcome, Analyzer, failed_fragment, make_fragment

ANALYZERS: Dict[ContextSource, Analyzer] = {
    ContextSource.DESIGN: design_tokens.analyze_design_tokens,
    ContextSource.BUSINESS: business.analyze_business,
    ContextSource.TECHNICAL: technical.analyze_technical,
    ContextSource.UX: ux.analyze_ux,
}

EXPECTED_FIELDS: Dict[ContextSource, List[str]] = {
    ContextSource.DESIGN: design_tokens.EXPECTED_FIELDS,
    ContextSource.BUSINESS: business.EXPECTED_FIELDS,
    ContextSource.TECHNICAL: technical.EXPECTED_FIELDS,
    ContextSource.UX: ux.EXPECTED_FIELDS,
}

__all__ = [
    "ANALYZERS",
    "EXPECTED_FIELDS",
    "AnalysisInput",
    "AnalysisOutcome",
    "Analyzer",
    "failed_fragment",
    "make_fragment",
]
