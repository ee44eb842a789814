"""Figma-to-ticket generation core.

Subpackages:
- context: design-tree traversal, analyzers and the context aggregator
- generation: strategies, strategy selection and the fallback cascade
- cache: cache keys, the two-tier ticket cache and request coalescing
- templates: Jinja2 ticket templates and their engine
- integrations: Figma REST client, Claude CLI text generation, Redis store
"""

from .config import Settings, load_settings
from .errors import TicketGenError, ValidationError
from .models import GenerationRequest, GenerationResult, HealthReport
from .service import TicketGenerationService, create_service

__version__ = "0.1.0"

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "HealthReport",
    "Settings",
    "TicketGenError",
    "TicketGenerationService",
    "ValidationError",
    "create_service",
    "load_settings",
]
