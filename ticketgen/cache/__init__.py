"""Result caching and request coalescing."""

from .keys import cache_key_fields, derive_cache_key
from .singleflight import SingleFlight
from .store import DurableStore, TicketCache

__all__ = [
    "DurableStore",
    "SingleFlight",
    "TicketCache",
    "cache_key_fields",
    "derive_cache_key",
]
