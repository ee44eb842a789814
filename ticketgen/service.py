"""Ticket generation orchestrator.

Flow per request:

    validate -> design data -> ContextBundle -> capabilities -> strategy
    -> cache key -> singleflight( cache lookup -> cascade -> cache write )

``generate_ticket`` raises only ``ValidationError``; every other failure ends
in a degraded but non-empty ticket.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Set, Union

from pydantic import ValidationError as PydanticValidationError

from .cache import SingleFlight, TicketCache, derive_cache_key
from .config import Settings, load_settings
from .context.aggregator import ContextAggregator
from .errors import ConfigError, TicketGenError, ValidationError
from .generation import FallbackCascade, StrategyRegistry, last_resort_result, select_strategy
from .integrations.figma_client import FigmaClient, FigmaDesignSource, SelectionRef
from .integrations.redis_store import RedisCacheStore
from .integrations.text_generation import ClaudeCliTextGenerator, TextGenerator
from .models import (
    Capability,
    ContextBundle,
    DesignData,
    DocumentType,
    FileContext,
    GenerationRequest,
    GenerationResult,
    HealthReport,
    Platform,
)
from .templates import TemplateEngine

logger = logging.getLogger(__name__)

RequestLike = Union[GenerationRequest, Mapping[str, Any]]

# Request fields that fall back to configured defaults when the caller omits them
_DEFAULTED_FIELDS = {
    "platform": "default_platform",
    "document_type": "default_document_type",
    "tech_stack": "default_tech_stack",
}


def _validation_error(e: PydanticValidationError) -> ValidationError:
    fields = []
    messages = []
    for err in e.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
        if loc and loc not in fields:
            fields.append(loc)
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return ValidationError("invalid generation request: " + "; ".join(messages), fields)


class TicketGenerationService:
    """Turns GenerationRequests into tickets.

    Collaborators are injected; ``create_service`` wires the real ones from
    Settings. The cache, aggregator memo and in-flight map belong to this
    instance and live as long as it does.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        generator: Optional[TextGenerator] = None,
        engine: Optional[TemplateEngine] = None,
        cache: Optional[TicketCache] = None,
        aggregator: Optional[ContextAggregator] = None,
        design_source: Optional[FigmaDesignSource] = None,
        durable_store: Optional[RedisCacheStore] = None,
    ):
        for value, enum in ((settings.default_platform, Platform), (settings.default_document_type, DocumentType)):
            try:
                enum(value)
            except ValueError as e:
                raise ConfigError(f"unsupported default {enum.__name__}: {value!r}") from e

        self._settings = settings
        self._generator = generator
        self._engine = engine if engine is not None else TemplateEngine(settings.template_dir)
        self._cache = cache if cache is not None else TicketCache(capacity=settings.memory_cache_capacity)
        self._aggregator = aggregator if aggregator is not None else ContextAggregator(
            max_depth=settings.max_node_depth,
            memo_capacity=settings.analysis_cache_capacity,
        )
        self._design_source = design_source
        self._durable_store = durable_store
        self._registry = StrategyRegistry.default(
            generator,
            self._engine,
            max_tokens=settings.ai_max_tokens,
            temperature=settings.ai_temperature,
        )
        self._cascade = FallbackCascade(self._registry, tier_timeout=settings.tier_timeout_seconds)
        self._inflight: SingleFlight[GenerationResult] = SingleFlight()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def cache(self) -> TicketCache:
        return self._cache

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def validate_request(self, request: RequestLike) -> GenerationRequest:
        """Parse and default a request.

        Raises:
            ValidationError: malformed or missing fields.
        """
        if isinstance(request, GenerationRequest):
            parsed = request
        elif isinstance(request, Mapping):
            try:
                parsed = GenerationRequest.model_validate(dict(request))
            except PydanticValidationError as e:
                raise _validation_error(e) from e
        else:
            raise ValidationError(
                f"request must be a GenerationRequest or a mapping, got {type(request).__name__}"
            )

        defaults = {
            name: getattr(self._settings, setting)
            for name, setting in _DEFAULTED_FIELDS.items()
            if name not in parsed.model_fields_set
        }
        if not defaults:
            return parsed
        data = parsed.model_dump(exclude_unset=True)
        data.update(defaults)
        try:
            return GenerationRequest.model_validate(data)
        except PydanticValidationError as e:
            raise _validation_error(e) from e

    async def generate_ticket(self, request: RequestLike) -> GenerationResult:
        """Generate a ticket. Never returns empty content.

        Raises:
            ValidationError: the request is malformed.
        """
        req = self.validate_request(request)
        try:
            return await self._generate(req)
        except Exception:
            logger.error(
                "Ticket generation for %s failed outside the cascade; returning last-resort ticket",
                req.resolved_component_name, exc_info=True,
            )
            return last_resort_result()

    async def _generate(self, req: GenerationRequest) -> GenerationResult:
        design = await self._design_data(req)
        bundle = self._aggregator.build_context(design, self._file_context(req))
        capabilities = self._capabilities(bundle)
        selected = select_strategy(self._registry, req, bundle, capabilities)
        key = derive_cache_key(selected.name.value, req)
        logger.info(
            "Generating %s/%s for %s: strategy=%s confidence=%.1f key=%s",
            req.platform.value, req.document_type.value, req.resolved_component_name,
            selected.name.value, bundle.overall_confidence, key,
        )

        async def work() -> GenerationResult:
            cached = await self._cache.get(key)
            if cached is not None:
                return cached
            result = await self._cascade.run(req, bundle, selected, capabilities)
            ttl = (
                self._settings.degraded_cache_ttl_seconds
                if result.metadata.degraded
                else self._settings.cache_ttl_seconds
            )
            await self._cache.set(key, result, ttl)
            return result

        return await self._inflight.do(key, work)

    def _file_context(self, req: GenerationRequest) -> FileContext:
        base = req.file_context or FileContext()
        return base.model_copy(update={
            "tech_stack": req.tech_stack_list,
            "component_name": req.resolved_component_name,
        })

    async def _design_data(self, req: GenerationRequest) -> DesignData:
        """Frames from the request, or a fetch when it only references a node."""
        from_request = DesignData.from_request(req)
        if req.has_frame_data or req.has_enhanced_frame_data:
            return from_request

        ctx = req.file_context
        if self._design_source is None or not (ctx and ctx.file_key and req.component_id):
            return from_request

        selection = SelectionRef(
            file_key=ctx.file_key,
            node_ids=[req.component_id],
            include_screenshot=not req.has_screenshot,
        )
        try:
            design = await self._design_source.get_design_data(selection)
        except (TicketGenError, ValueError) as e:
            logger.warning(
                "Design data for %s/%s unavailable, continuing without it: %s",
                ctx.file_key, req.component_id, e,
            )
            return from_request
        if req.screenshot:
            design.screenshot_ref = req.screenshot
        return design

    def _service_capabilities(self) -> Set[Capability]:
        caps: Set[Capability] = set()
        if self._settings.ai_enabled and self._generator is not None and self._generator.available:
            caps.add(Capability.AI_SERVICE)
        if self._engine.available:
            caps.add(Capability.TEMPLATE_ENGINE)
        return caps

    def _capabilities(self, bundle: ContextBundle) -> Set[Capability]:
        caps = self._service_capabilities()
        if bundle.has_frame_data:
            caps.add(Capability.FRAME_DATA)
        if bundle.has_enhanced_frame_data:
            caps.add(Capability.ENHANCED_FRAME_DATA)
        if bundle.has_screenshot:
            caps.add(Capability.SCREENSHOT)
        return caps

    # ------------------------------------------------------------------
    # Health / lifecycle
    # ------------------------------------------------------------------

    def health_check(self) -> HealthReport:
        """Aggregate component reports from in-memory state. Never raises."""
        try:
            caps = self._service_capabilities()
            components = {
                "cache": self._cache.health_check(),
                "aggregator": self._aggregator.health_check(),
                "strategies": self._registry.health_check(caps),
                "cascade": self._cascade.health_check(),
                "templates": self._engine.health_check(),
            }
            present = {
                "ai_service": Capability.AI_SERVICE in caps,
                "template_engine": Capability.TEMPLATE_ENGINE in caps,
                "durable_store": self._cache.has_durable_store,
                "design_source": self._design_source is not None,
            }
            healthy = present["ai_service"] and present["template_engine"] and present["durable_store"]
            details: Dict[str, Any] = {
                name: report.model_dump(by_alias=True) for name, report in components.items()
            }
            details["inFlight"] = len(self._inflight)
            return HealthReport(
                status="healthy" if healthy else "degraded",
                dependencies_present=present,
                cache_size=len(self._cache),
                capabilities=components["strategies"].capabilities,
                details=details,
            )
        except Exception as e:
            logger.error("Health report could not be built", exc_info=True)
            return HealthReport(status="unknown", details={"error": f"{type(e).__name__}: {e}"})

    async def close(self) -> None:
        if self._design_source is not None:
            await self._design_source.close()
        if self._durable_store is not None:
            await self._durable_store.close()


def create_service(settings: Optional[Settings] = None) -> TicketGenerationService:
    """Wire a service with the real collaborators described by ``settings``."""
    settings = settings or load_settings()

    generator: Optional[TextGenerator] = None
    if settings.ai_enabled:
        generator = ClaudeCliTextGenerator(
            claude_bin=settings.claude_cli_path,
            model=settings.ai_model,
            timeout=settings.ai_timeout_seconds,
            max_retries=settings.ai_max_retries,
        )
        if not generator.available:
            logger.warning(
                "Claude CLI %r not found; AI tiers disabled until it is installed",
                settings.claude_cli_path,
            )

    durable = RedisCacheStore(settings.redis_url) if settings.redis_url else None
    cache = TicketCache(capacity=settings.memory_cache_capacity, durable=durable)

    design_source = None
    if settings.figma_token:
        design_source = FigmaDesignSource(
            FigmaClient(token=settings.figma_token, timeout=settings.figma_timeout_seconds)
        )
    else:
        logger.info("FIGMA_TOKEN not set; node references without frame data use request fields only")

    return TicketGenerationService(
        settings,
        generator=generator,
        cache=cache,
        design_source=design_source,
        durable_store=durable,
    )
