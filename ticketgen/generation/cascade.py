"""Fallback cascade: run the selected tier, walking down on failure.

``FallbackCascade.run`` never raises. Every visited tier is recorded as a
``TierAttempt``; when all of them fail, a packaged literal ticket is returned.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Set

from ..errors import ExhaustedFallback, GenerationFailure, GenerationTimeout, TicketGenError
from ..models import (
    Capability,
    ContextBundle,
    GenerationRequest,
    GenerationResult,
    HealthReport,
    ResultMetadata,
    TierAttempt,
    TierOutcome,
)
from .emergency import LAST_RESORT_CONTENT
from .strategies import Strategy, StrategyName, StrategyRegistry

logger = logging.getLogger(__name__)

LAST_RESORT_GENERATION_TYPE = "emergency-literal"


def last_resort_result(
    selected: Optional[str] = None,
    attempts: Optional[List[TierAttempt]] = None,
) -> GenerationResult:
    return GenerationResult(
        content=LAST_RESORT_CONTENT,
        metadata=ResultMetadata(
            strategy_used=StrategyName.EMERGENCY.value,
            generation_type=LAST_RESORT_GENERATION_TYPE,
            confidence=0.0,
            degraded=True,
            generated_at=datetime.now(timezone.utc).isoformat(),
            selected_strategy=selected,
            attempts=list(attempts or []),
        ),
    )


class FallbackCascade:
    """Runs strategies from the selected tier downward.

    Args:
        registry: Strategy instances in tier order.
        tier_timeout: Budget in seconds for each AI-backed tier.
    """

    def __init__(self, registry: StrategyRegistry, tier_timeout: float = 150.0):
        self._registry = registry
        self._tier_timeout = tier_timeout
        self._runs = 0
        self._degraded = 0
        self._exhausted = 0

    async def _attempt(
        self, strategy: Strategy, request: GenerationRequest, bundle: ContextBundle,
    ) -> GenerationResult:
        if strategy.name is StrategyName.EMERGENCY:
            return await strategy.generate(request, bundle)
        return await asyncio.wait_for(strategy.generate(request, bundle), timeout=self._tier_timeout)

    async def run(
        self,
        request: GenerationRequest,
        bundle: ContextBundle,
        selected: Strategy,
        capabilities: Set[Capability],
    ) -> GenerationResult:
        self._runs += 1
        attempts: List[TierAttempt] = []

        for strategy in self._registry.tiers_from(selected.name):
            tier = strategy.name.value
            if not strategy.is_available(capabilities):
                missing = ", ".join(strategy.missing_capabilities(capabilities))
                logger.info("Skipping %s: missing %s", tier, missing)
                attempts.append(TierAttempt(
                    strategy=tier, outcome=TierOutcome.SKIPPED, detail=f"missing {missing}",
                ))
                continue

            start = time.monotonic()
            outcome = TierOutcome.FAILED
            try:
                result = await self._attempt(strategy, request, bundle)
                if not result.content or not result.content.strip():
                    raise GenerationFailure(f"{tier} produced empty content")
            except asyncio.TimeoutError:
                outcome = TierOutcome.TIMEOUT
                detail = f"timed out after {self._tier_timeout:.0f}s"
                logger.warning("Tier %s %s", tier, detail)
            except GenerationTimeout as e:
                outcome = TierOutcome.TIMEOUT
                detail = str(e)
                logger.warning("Tier %s timed out: %s", tier, detail)
            except TicketGenError as e:
                detail = f"{type(e).__name__}: {e}"
                logger.warning("Tier %s failed: %s", tier, detail)
            except Exception as e:
                detail = f"unexpected {type(e).__name__}: {e}"
                logger.error("Tier %s raised unexpectedly", tier, exc_info=True)
            else:
                duration_ms = int((time.monotonic() - start) * 1000)
                attempts.append(TierAttempt(
                    strategy=tier, outcome=TierOutcome.SUCCESS, duration_ms=duration_ms,
                ))
                degraded = strategy.name is not selected.name
                if degraded:
                    self._degraded += 1
                logger.info(
                    "Generated with %s in %dms (selected %s, degraded=%s)",
                    tier, duration_ms, selected.name.value, degraded,
                )
                return result.with_metadata(
                    degraded=degraded,
                    selected_strategy=selected.name.value,
                    attempts=attempts,
                )

            attempts.append(TierAttempt(
                strategy=tier,
                outcome=outcome,
                detail=detail,
                duration_ms=int((time.monotonic() - start) * 1000),
            ))

        self._exhausted += 1
        error = ExhaustedFallback([a.strategy for a in attempts])
        logger.error("%s; returning last-resort ticket", error)
        return last_resort_result(selected.name.value, attempts)

    def health_check(self) -> HealthReport:
        return HealthReport(
            status="healthy",
            capabilities=[s.name.value for s in self._registry.tiers_from(StrategyName.PRIMARY)],
            details={
                "tierTimeoutSeconds": self._tier_timeout,
                "runs": self._runs,
                "degradedRuns": self._degraded,
                "exhaustedRuns": self._exhausted,
            },
        )
