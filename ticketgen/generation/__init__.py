"""Strategies, strategy selection and the fallback cascade."""

from .cascade import FallbackCascade, last_resort_result
from .selector import select_strategy
from .strategies import (
    EmergencyStrategy,
    GuidedStrategy,
    HybridStrategy,
    PureAIStrategy,
    Strategy,
    StrategyName,
    StrategyRegistry,
    TIER_ORDER,
)

__all__ = [
    "EmergencyStrategy",
    "FallbackCascade",
    "GuidedStrategy",
    "HybridStrategy",
    "PureAIStrategy",
    "Strategy",
    "StrategyName",
    "StrategyRegistry",
    "TIER_ORDER",
    "last_resort_result",
    "select_strategy",
]
