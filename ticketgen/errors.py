"""Error taxonomy for ticket generation.

Only ``ValidationError`` crosses the ``generate_ticket`` boundary. Everything
else is caught by the fallback cascade (or by the adapter that raised it) and
turned into a degraded result.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class TicketGenError(Exception):
    """Base class for all ticketgen errors."""


class ValidationError(TicketGenError):
    """Raised when a generation request is malformed or incomplete."""

    def __init__(self, message: str, fields: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.fields: List[str] = list(fields or [])


class ConfigError(TicketGenError):
    """Raised when a configuration value cannot be coerced or is out of range."""


class DependencyUnavailable(TicketGenError):
    """An external collaborator is unconfigured or unreachable."""


class GenerationTimeout(TicketGenError):
    """An external call exceeded its time budget."""


class GenerationFailure(TicketGenError):
    """A strategy ran but produced no usable content."""


class TemplateError(TicketGenError):
    """Base class for template engine failures."""


class TemplateNotFound(TemplateError):
    """No template matches the requested id."""


class RenderError(TemplateError):
    """A template was found but failed to render."""


class AnalysisError(TicketGenError):
    """An analyzer could not produce a fragment.

    Carried as a value inside ``AnalysisOutcome``; the aggregator never lets
    it escape.
    """

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source} analysis failed: {reason}")
        self.source = source
        self.reason = reason


class ExhaustedFallback(TicketGenError):
    """Every cascade tier failed. Logged, never raised to callers."""

    def __init__(self, attempted: Sequence[str]):
        super().__init__(
            "All generation tiers failed: " + (", ".join(attempted) or "none attempted")
        )
        self.attempted = list(attempted)
