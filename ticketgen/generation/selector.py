"""Pick the starting strategy for a request."""

from __future__ import annotations

import logging
from typing import Set

from ..models import Capability, ContextBundle, GenerationRequest
from .strategies import Strategy, StrategyName, StrategyRegistry

logger = logging.getLogger(__name__)


def select_strategy(
    registry: StrategyRegistry,
    request: GenerationRequest,
    bundle: ContextBundle,
    capabilities: Set[Capability],
) -> Strategy:
    """Choose where the cascade starts.

    1. A recognized ``preferred_strategy`` wins, even if its capabilities are
       missing; the cascade then walks down from it.
    2. AI available and the bundle carries frame data or a screenshot:
       the guided tier.
    3. Otherwise the emergency tier.

    Pure: no I/O, same inputs give the same strategy.
    """
    preferred = registry.resolve_name(request.preferred_strategy)
    if preferred is not None:
        logger.debug("Using preferred strategy %s", preferred.value)
        return registry.get(preferred)

    has_design_input = bundle.has_frame_data or bundle.has_screenshot
    if Capability.AI_SERVICE in capabilities and has_design_input:
        return registry.get(StrategyName.PRIMARY)

    logger.debug(
        "Selecting emergency (ai=%s, frames=%s, screenshot=%s)",
        Capability.AI_SERVICE in capabilities, bundle.has_frame_data, bundle.has_screenshot,
    )
    return registry.get(StrategyName.EMERGENCY)
