"""Coalescing of concurrent identical work.

The first caller for a key becomes the leader and runs the work; callers
arriving while it is in flight await the leader's outcome. If the leader
fails, waiting callers retry, and one of them becomes the next leader.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Generic, TypeVar

from ..errors import GenerationFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    def __init__(self) -> None:
        self._inflight: Dict[str, "asyncio.Future[T]"] = {}

    def __len__(self) -> int:
        return len(self._inflight)

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    async def do(self, key: str, work: Callable[[], Awaitable[T]]) -> T:
        while True:
            existing = self._inflight.get(key)
            if existing is None:
                break
            logger.debug("Joining in-flight work for %s", key)
            try:
                return await asyncio.shield(existing)
            except asyncio.CancelledError:
                if not existing.done() or existing.cancelled():
                    raise
                logger.info("Leader for %s was cancelled, retrying", key)
            except Exception as e:
                logger.info("Leader for %s failed (%s), retrying", key, e)

        # Registered before the first await so later arrivals see it
        fut: "asyncio.Future[T]" = asyncio.get_running_loop().create_future()
        self._inflight[key] = fut
        try:
            result = await work()
        except asyncio.CancelledError:
            fut.set_exception(GenerationFailure(f"in-flight work for {key} was cancelled"))
            raise
        except BaseException as e:
            fut.set_exception(e)
            raise
        else:
            fut.set_result(result)
            return result
        finally:
            if self._inflight.get(key) is fut:
                del self._inflight[key]
            if fut.done() and not fut.cancelled():
                # Mark retrieved so an unobserved failure is not reported at GC
                fut.exception()
