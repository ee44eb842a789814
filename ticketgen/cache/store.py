"""Two-tier ticket cache.

Memory tier: insertion-ordered map bounded at ``capacity``; once full, the
oldest inserted entry is evicted (FIFO, reads do not refresh position).
Durable tier: optional store with ``get`` / ``set_with_expiry``. Its failures
are logged and the operation continues memory-only.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Callable, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from ..errors import TicketGenError
from ..models import CacheEntry, GenerationResult, HealthReport

logger = logging.getLogger(__name__)


class DurableStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None: ...


class TicketCache:
    """Cache of GenerationResults keyed by ``derive_cache_key``.

    Args:
        capacity: Maximum entries held in memory.
        durable: Optional durable store (e.g. ``RedisCacheStore``).
        clock: Seconds clock used for memory-tier expiry.
        restore_ttl_seconds: Memory lifetime of an entry restored from the
            durable tier, whose remaining TTL is unknown.
    """

    def __init__(
        self,
        capacity: int = 500,
        durable: Optional[DurableStore] = None,
        clock: Callable[[], float] = time.monotonic,
        restore_ttl_seconds: int = 300,
    ):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._durable = durable
        self._clock = clock
        self._restore_ttl = restore_ttl_seconds
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._evictions = 0
        self._hits = 0
        self._misses = 0
        self._durable_errors = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def has_durable_store(self) -> bool:
        return self._durable is not None

    # ------------------------------------------------------------------
    # Memory tier
    # ------------------------------------------------------------------

    def _memory_get(self, key: str) -> Optional[GenerationResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def _memory_set(self, key: str, value: GenerationResult, ttl_seconds: int) -> None:
        entry = CacheEntry(
            key=key,
            value=value,
            ttl_seconds=ttl_seconds,
            expires_at=self._clock() + ttl_seconds,
        )
        if key in self._entries:
            # Replace in place; position stays that of the first insertion
            self._entries[key] = entry
            return
        self._entries[key] = entry
        while len(self._entries) > self._capacity:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Evicted %s (capacity %d)", evicted, self._capacity)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Optional[GenerationResult]:
        value = self._memory_get(key)
        if value is None and self._durable is not None:
            value = await self._durable_get(key)
        if value is None:
            self._misses += 1
            logger.debug("Cache miss: %s", key)
            return None
        self._hits += 1
        logger.info("Cache hit: %s", key)
        return value.with_metadata(cached=True)

    async def set(self, key: str, value: GenerationResult, ttl_seconds: int) -> None:
        stored = value.with_metadata(cached=False)
        self._memory_set(key, stored, ttl_seconds)
        if self._durable is not None:
            try:
                await self._durable.set_with_expiry(
                    key, stored.model_dump_json(by_alias=True), ttl_seconds
                )
            except Exception as e:
                self._durable_errors += 1
                logger.warning(
                    "Durable cache write failed for %s, memory only: %s", key, e,
                    exc_info=not isinstance(e, TicketGenError),
                )

    async def _durable_get(self, key: str) -> Optional[GenerationResult]:
        try:
            raw = await self._durable.get(key)
        except Exception as e:
            self._durable_errors += 1
            logger.warning(
                "Durable cache read failed for %s, memory only: %s", key, e,
                exc_info=not isinstance(e, TicketGenError),
            )
            return None
        if raw is None:
            return None
        try:
            value = GenerationResult.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning("Discarding undecodable cache entry %s: %s", key, e)
            return None
        self._memory_set(key, value, self._restore_ttl)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def health_check(self) -> HealthReport:
        return HealthReport(
            status="healthy" if self._durable is not None else "degraded",
            dependencies_present={"durable_store": self._durable is not None},
            cache_size=len(self._entries),
            capabilities=["memory"] + (["durable"] if self._durable is not None else []),
            details={
                "capacity": self._capacity,
                "evictions": self._evictions,
                "hits": self._hits,
                "misses": self._misses,
                "durableErrors": self._durable_errors,
            },
        )
