"""Data model for ticket generation.

Request/result objects are pydantic models with camelCase aliases so the HTTP
layer and plugin payloads can use the JSON shape directly. Internal carriers
that hold raw bytes (design data, screenshots) are plain dataclasses.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_COMPONENT_NAME = "Component"
DEFAULT_TECH_STACK = "React TypeScript"


class Platform(str, Enum):
    JIRA = "jira"
    GITHUB = "github"
    CONFLUENCE = "confluence"
    WIKI = "wiki"
    LINEAR = "linear"
    NOTION = "notion"
    AZURE_DEVOPS = "azure-devops"
    TRELLO = "trello"
    ASANA = "asana"


class DocumentType(str, Enum):
    COMPONENT = "component"
    FEATURE = "feature"
    BUG = "bug"
    EPIC = "epic"
    DOCUMENTATION = "documentation"
    DESIGN_HANDOFF = "design-handoff"
    API_SPEC = "api-spec"


class ContextSource(str, Enum):
    DESIGN = "design"
    BUSINESS = "business"
    TECHNICAL = "technical"
    UX = "ux"


class Capability(str, Enum):
    """Things a strategy may need in order to run."""

    AI_SERVICE = "ai-service"
    TEMPLATE_ENGINE = "template-engine"
    FRAME_DATA = "frame-data"
    ENHANCED_FRAME_DATA = "enhanced-frame-data"
    SCREENSHOT = "screenshot"


class TierOutcome(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
    TIMEOUT = "timeout"


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FrozenModel(_Model):
    model_config = ConfigDict(frozen=True)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class FileContext(_FrozenModel):
    """Where the selection lives (Figma file/page/project) plus project stack."""

    file_name: Optional[str] = None
    file_key: Optional[str] = None
    project_name: Optional[str] = None
    page_name: Optional[str] = None
    tech_stack: List[str] = Field(default_factory=list)
    component_name: Optional[str] = None

    @field_validator("file_name", "file_key", "project_name", "page_name", "component_name", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return _blank_to_none(v)


class GenerationRequest(_FrozenModel):
    """One ticket generation request. Immutable after construction."""

    component_id: Optional[str] = None
    component_name: Optional[str] = None
    platform: Platform = Platform.JIRA
    document_type: DocumentType = DocumentType.COMPONENT
    tech_stack: Union[str, List[str]] = DEFAULT_TECH_STACK
    frame_data: Optional[List[Dict[str, Any]]] = None
    enhanced_frame_data: Optional[List[Dict[str, Any]]] = None
    screenshot: Optional[str] = Field(default=None, repr=False)
    instructions: Optional[str] = None
    preferred_strategy: Optional[str] = None
    file_context: Optional[FileContext] = None

    @field_validator(
        "component_id", "component_name", "screenshot", "instructions", "preferred_strategy",
        mode="before",
    )
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("platform", "document_type", mode="before")
    @classmethod
    def _lowercase(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower().replace("_", "-")
        return v

    @field_validator("frame_data", "enhanced_frame_data", mode="before")
    @classmethod
    def _wrap_single_frame(cls, v: Any) -> Any:
        # The plugin sends a bare node when exactly one frame is selected
        if isinstance(v, dict):
            return [v]
        return v

    @field_validator("tech_stack")
    @classmethod
    def _check_tech_stack(cls, v: Union[str, List[str]]) -> Union[str, List[str]]:
        if isinstance(v, list) and not any(item.strip() for item in v):
            raise ValueError("techStack list must contain at least one entry")
        return v

    @model_validator(mode="after")
    def _require_subject(self) -> "GenerationRequest":
        if not (
            self.component_name
            or self.component_id
            or self.frame_data
            or self.enhanced_frame_data
            or self.screenshot
            or self.file_context
        ):
            raise ValueError(
                "request must identify a component: provide componentName, "
                "componentId, frameData, enhancedFrameData, screenshot or fileContext"
            )
        return self

    # -- derived values --

    @property
    def resolved_component_name(self) -> str:
        if self.component_name:
            return self.component_name
        for frames in (self.enhanced_frame_data, self.frame_data):
            if frames:
                name = frames[0].get("name")
                if isinstance(name, str) and name.strip():
                    return name.strip()
        return DEFAULT_COMPONENT_NAME

    @property
    def tech_stack_list(self) -> List[str]:
        if isinstance(self.tech_stack, str):
            items = [self.tech_stack]
        else:
            items = list(self.tech_stack)
        return [item.strip() for item in items if item and item.strip()] or [DEFAULT_TECH_STACK]

    @property
    def has_frame_data(self) -> bool:
        return bool(self.frame_data)

    @property
    def has_enhanced_frame_data(self) -> bool:
        return bool(self.enhanced_frame_data)

    @property
    def has_screenshot(self) -> bool:
        return bool(self.screenshot)


# ---------------------------------------------------------------------------
# Design data
# ---------------------------------------------------------------------------


@dataclass
class Screenshot:
    """Rendered image of the selection."""

    data: bytes
    format: str = "png"

    def to_data_url(self) -> str:
        mime = "jpeg" if self.format.lower() in ("jpg", "jpeg") else self.format.lower()
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:image/{mime};base64,{encoded}"


@dataclass
class DesignData:
    """Raw design data for one selection.

    ``document`` may be None (empty selection, fetch failure); every consumer
    must tolerate that.
    """

    document: Optional[Dict[str, Any]] = None
    styles: Dict[str, Any] = field(default_factory=dict)
    screenshot: Optional[Screenshot] = None
    screenshot_ref: Optional[str] = None
    enhanced: bool = False

    @property
    def reference(self) -> Optional[str]:
        if self.screenshot_ref:
            return self.screenshot_ref
        if self.screenshot is not None:
            return self.screenshot.to_data_url()
        return None

    @classmethod
    def from_request(cls, request: GenerationRequest) -> "DesignData":
        frames = request.enhanced_frame_data or request.frame_data
        document = None
        if frames:
            document = {
                "id": request.component_id or "selection",
                "name": request.resolved_component_name,
                "type": "SELECTION",
                "children": list(frames),
            }
        return cls(
            document=document,
            screenshot_ref=request.screenshot,
            enhanced=bool(request.enhanced_frame_data),
        )


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


def is_populated(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, dict, tuple, set)):
        return len(value) > 0
    return True


class ContextFragment(_FrozenModel):
    """One analyzer's view of the selection."""

    source: ContextSource
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    data: Dict[str, Any] = Field(default_factory=dict)
    missing: List[str] = Field(default_factory=list)
    expected_fields: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def populated_fields(self) -> List[str]:
        return [name for name in self.expected_fields if is_populated(self.data.get(name))]


class ContextBundle(_FrozenModel):
    """Merged, confidence-scored context for one request."""

    fragments: Dict[str, ContextFragment] = Field(default_factory=dict)
    screenshot: Optional[str] = Field(default=None, repr=False)
    has_frame_data: bool = False
    has_enhanced_frame_data: bool = False
    has_screenshot: bool = False
    overall_confidence: float = 0.0
    debug_markers: List[str] = Field(default_factory=list)
    component_name: str = DEFAULT_COMPONENT_NAME

    def data(self, source: ContextSource) -> Dict[str, Any]:
        fragment = self.fragments.get(source.value)
        return dict(fragment.data) if fragment else {}


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class TierAttempt(_FrozenModel):
    strategy: str
    outcome: TierOutcome
    detail: Optional[str] = None
    duration_ms: int = 0


class ResultMetadata(_FrozenModel):
    strategy_used: str
    generation_type: str
    confidence: float = 0.0
    degraded: bool = False
    cached: bool = False
    generated_at: str
    selected_strategy: Optional[str] = None
    attempts: List[TierAttempt] = Field(default_factory=list)


class GenerationResult(_FrozenModel):
    content: str
    metadata: ResultMetadata

    def with_metadata(self, **updates: Any) -> "GenerationResult":
        """Return a copy with metadata fields replaced."""
        return self.model_copy(update={"metadata": self.metadata.model_copy(update=updates)})


class CacheEntry(_FrozenModel):
    key: str
    value: GenerationResult
    ttl_seconds: int
    expires_at: float


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthReport(_Model):
    status: str
    dependencies_present: Dict[str, bool] = Field(default_factory=dict)
    cache_size: int = 0
    capabilities: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)
