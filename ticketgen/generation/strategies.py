"""Generation strategies and their registry.

Four tiers, tried from best to cheapest:

- ``ai-powered-primary``: AI fills the template skeleton's sections (JSON),
  the template engine renders the ticket.
- ``ai-powered-hybrid``: template rendered from context alone, then an AI pass
  over the visual context adds an "AI-Enhanced Analysis" section.
- ``ai-powered-pure``: AI writes the whole ticket from the context summary.
- ``emergency``: packaged literal ticket, no external call.

Each strategy declares the capabilities it needs: everything in ``required``
plus at least one of ``any_of`` when that set is non-empty.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set

from ..errors import DependencyUnavailable, GenerationFailure
from ..integrations.text_generation import ImageFile, TextGenerator, parse_llm_json
from ..models import (
    Capability,
    ContextBundle,
    GenerationRequest,
    GenerationResult,
    HealthReport,
    ResultMetadata,
)
from ..templates import DOCUMENT_LABELS, TemplateEngine, sections_for, template_id_for
from .emergency import render_emergency_ticket
from .prompts import (
    TICKET_SYSTEM_PROMPT,
    build_guided_prompt,
    build_hybrid_prompt,
    build_pure_prompt,
)
from .variables import build_template_variables

logger = logging.getLogger(__name__)


class StrategyName(str, Enum):
    PRIMARY = "ai-powered-primary"
    HYBRID = "ai-powered-hybrid"
    PURE = "ai-powered-pure"
    EMERGENCY = "emergency"


TIER_ORDER: List[StrategyName] = [
    StrategyName.PRIMARY,
    StrategyName.HYBRID,
    StrategyName.PURE,
    StrategyName.EMERGENCY,
]

# Older client-facing strategy names
LEGACY_NAMES: Dict[str, StrategyName] = {
    "ai": StrategyName.PRIMARY,
    "ai-powered": StrategyName.PRIMARY,
    "template": StrategyName.PRIMARY,
    "template-guided-ai": StrategyName.PRIMARY,
    "enhanced": StrategyName.HYBRID,
    "hybrid": StrategyName.HYBRID,
    "pure-ai": StrategyName.PURE,
    "legacy": StrategyName.EMERGENCY,
    "fallback": StrategyName.EMERGENCY,
    "basic": StrategyName.EMERGENCY,
}

PURE_AI_FOOTER = "*Generated via AI-Powered Strategy (Pure AI)*"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _document_label(request: GenerationRequest) -> str:
    return DOCUMENT_LABELS.get(request.document_type.value, "Component")


class Strategy(ABC):
    """Base class for a generation tier."""

    name: StrategyName
    generation_type: str
    priority: int
    confidence_factor: float = 1.0
    required: FrozenSet[Capability] = frozenset()
    any_of: FrozenSet[Capability] = frozenset()

    def is_available(self, capabilities: Set[Capability]) -> bool:
        if not self.required <= capabilities:
            return False
        return not self.any_of or bool(self.any_of & capabilities)

    def missing_capabilities(self, capabilities: Set[Capability]) -> List[str]:
        missing = sorted(c.value for c in self.required - capabilities)
        if self.any_of and not self.any_of & capabilities:
            missing.append("one of " + "/".join(sorted(c.value for c in self.any_of)))
        return missing

    def _result(self, content: str, bundle: ContextBundle) -> GenerationResult:
        return GenerationResult(
            content=content,
            metadata=ResultMetadata(
                strategy_used=self.name.value,
                generation_type=self.generation_type,
                confidence=round(bundle.overall_confidence * self.confidence_factor, 1),
                generated_at=_now(),
            ),
        )

    @abstractmethod
    async def generate(self, request: GenerationRequest, bundle: ContextBundle) -> GenerationResult:
        """Produce a ticket or raise a ``TicketGenError``."""


class _AIStrategy(Strategy):
    """Shared plumbing for tiers that call the text generator."""

    def __init__(
        self,
        generator: Optional[TextGenerator],
        max_tokens: int = 2048,
        temperature: float = 0.3,
    ):
        self._generator = generator
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def _ask(self, prompt: str, image_path: Optional[str] = None) -> str:
        if self._generator is None or not self._generator.available:
            raise DependencyUnavailable("text generation is not available")
        generation = await self._generator.generate(
            prompt,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system_prompt=TICKET_SYSTEM_PROMPT,
            image_path=image_path,
            caller=self.name.value,
        )
        logger.info(
            "%s: AI responded in %dms (%d chars, %d retries)",
            self.name.value, generation.duration_ms, len(generation.text), generation.retry_count,
        )
        return generation.text


class GuidedStrategy(_AIStrategy):
    name = StrategyName.PRIMARY
    generation_type = "template-guided-ai"
    priority = 0
    confidence_factor = 1.0
    required = frozenset({Capability.AI_SERVICE, Capability.TEMPLATE_ENGINE})
    any_of = frozenset({Capability.FRAME_DATA, Capability.ENHANCED_FRAME_DATA, Capability.SCREENSHOT})

    def __init__(self, generator: Optional[TextGenerator], engine: TemplateEngine, **kwargs):
        super().__init__(generator, **kwargs)
        self._engine = engine

    async def generate(self, request: GenerationRequest, bundle: ContextBundle) -> GenerationResult:
        document_type = request.document_type.value
        sections = sections_for(document_type)
        prompt = build_guided_prompt(
            request, bundle, sections, _document_label(request), self._max_tokens
        )
        with ImageFile(bundle.screenshot) as image_path:
            raw = await self._ask(prompt, image_path)

        values = parse_llm_json(raw, caller=self.name.value)
        if not values:
            raise GenerationFailure("AI returned no usable section values")
        filled = [s for s in sections if s in values]
        if not filled:
            raise GenerationFailure("AI response filled none of the template sections")
        logger.debug("%s: AI filled %d/%d sections", self.name.value, len(filled), len(sections))

        variables = build_template_variables(request, bundle, section_overrides=values)
        content = self._engine.render(template_id_for(request.platform.value, document_type), variables)
        return self._result(content, bundle)


class HybridStrategy(_AIStrategy):
    name = StrategyName.HYBRID
    generation_type = "ai-powered-hybrid"
    priority = 1
    confidence_factor = 0.9
    required = frozenset({Capability.AI_SERVICE, Capability.TEMPLATE_ENGINE})
    any_of = frozenset({Capability.SCREENSHOT, Capability.ENHANCED_FRAME_DATA})

    def __init__(self, generator: Optional[TextGenerator], engine: TemplateEngine, **kwargs):
        super().__init__(generator, **kwargs)
        self._engine = engine

    async def generate(self, request: GenerationRequest, bundle: ContextBundle) -> GenerationResult:
        template_id = template_id_for(request.platform.value, request.document_type.value)
        draft = self._engine.render(template_id, build_template_variables(request, bundle))

        prompt = build_hybrid_prompt(request, bundle, draft, _document_label(request), self._max_tokens)
        with ImageFile(bundle.screenshot) as image_path:
            insights = (await self._ask(prompt, image_path)).strip()
        if not insights:
            raise GenerationFailure("AI returned no visual insights")

        variables = build_template_variables(request, bundle, insights=insights)
        return self._result(self._engine.render(template_id, variables), bundle)


class PureAIStrategy(_AIStrategy):
    name = StrategyName.PURE
    generation_type = "ai-powered-pure"
    priority = 2
    confidence_factor = 0.75
    required = frozenset({Capability.AI_SERVICE})

    async def generate(self, request: GenerationRequest, bundle: ContextBundle) -> GenerationResult:
        prompt = build_pure_prompt(request, bundle, _document_label(request), self._max_tokens)
        text = (await self._ask(prompt)).strip()
        if not text:
            raise GenerationFailure("AI returned an empty ticket")
        return self._result(f"{text}\n\n---\n{PURE_AI_FOOTER}\n", bundle)


class EmergencyStrategy(Strategy):
    name = StrategyName.EMERGENCY
    generation_type = "emergency"
    priority = 3
    confidence_factor = 0.5

    async def generate(self, request: GenerationRequest, bundle: ContextBundle) -> GenerationResult:
        return self._result(render_emergency_ticket(request), bundle)


class StrategyRegistry:
    """Fixed, ordered set of strategy instances."""

    def __init__(self, strategies: List[Strategy]):
        by_name = {s.name: s for s in strategies}
        missing = [n.value for n in TIER_ORDER if n not in by_name]
        if missing:
            raise ValueError(f"registry is missing strategies: {', '.join(missing)}")
        self._strategies = by_name

    @classmethod
    def default(
        cls,
        generator: Optional[TextGenerator],
        engine: TemplateEngine,
        max_tokens: int = 2048,
        temperature: float = 0.3,
    ) -> "StrategyRegistry":
        knobs = {"max_tokens": max_tokens, "temperature": temperature}
        return cls([
            GuidedStrategy(generator, engine, **knobs),
            HybridStrategy(generator, engine, **knobs),
            PureAIStrategy(generator, **knobs),
            EmergencyStrategy(),
        ])

    def get(self, name: StrategyName) -> Strategy:
        return self._strategies[name]

    def resolve_name(self, name: Optional[str]) -> Optional[StrategyName]:
        """Map a client-supplied name (current or legacy) to a StrategyName."""
        if not name:
            return None
        key = name.strip().lower()
        try:
            return StrategyName(key)
        except ValueError:
            pass
        resolved = LEGACY_NAMES.get(key)
        if resolved is None:
            logger.warning("Unknown preferred strategy %r; ignoring", name)
        return resolved

    def tiers_from(self, start: StrategyName) -> List[Strategy]:
        """Strategies from ``start`` down to the last tier."""
        return [self._strategies[n] for n in TIER_ORDER[TIER_ORDER.index(start):]]

    def available(self, capabilities: Set[Capability]) -> List[StrategyName]:
        return [n for n in TIER_ORDER if self._strategies[n].is_available(capabilities)]

    def health_check(self, capabilities: Optional[Set[Capability]] = None) -> HealthReport:
        """Report from service-level capabilities; per-request inputs are ignored."""
        caps = capabilities or set()
        usable = [n for n in TIER_ORDER if self._strategies[n].required <= caps]
        return HealthReport(
            status="healthy" if StrategyName.PRIMARY in usable else "degraded",
            dependencies_present={c.value: c in caps for c in (Capability.AI_SERVICE, Capability.TEMPLATE_ENGINE)},
            capabilities=[n.value for n in usable],
            details={
                "tiers": [
                    {
                        "name": n.value,
                        "priority": self._strategies[n].priority,
                        "generationType": self._strategies[n].generation_type,
                    }
                    for n in TIER_ORDER
                ],
            },
        )
