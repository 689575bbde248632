"""
Single-Flight

Deduplicates concurrent calls per key: the first caller runs the work, every
caller arriving while it is in flight awaits the same result. The key is
released as soon as the work finishes, successfully or not.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight:
    """Keyed call deduplication for coroutines on one event loop."""

    def __init__(self):
        self._calls: Dict[Hashable, asyncio.Future] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._calls

    async def do(self, key: Hashable, fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run `fn` once per key at a time.

        Followers share the leader's result or exception. A follower that is
        cancelled does not cancel the shared call.
        """
        existing = self._calls.get(key)
        if existing is not None:
            logger.debug(f"Joining in-flight call for {key}")
            return await asyncio.shield(existing)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._calls[key] = future
        try:
            result = await fn()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unobserved failure does not warn at GC
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._calls.pop(key, None)

    def __len__(self) -> int:
        return len(self._calls)
