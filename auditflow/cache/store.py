"""
Cache Store

Per-domain, append-only history of TechnicalAnalysis entries.

- get_latest(domain): newest entry, or None
- append(entry): add an entry; nothing is ever overwritten or deleted
- history(domain, until): lazy async iteration, ascending by computed_at,
  over a snapshot taken when iteration starts

Two backends share this interface: RedisCacheStore for deployments and
MemoryCacheStore for single-process runs and tests.
"""

import asyncio
import bisect
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncIterator, Dict, Optional, Tuple

from .config import CacheConfig
from .models import TechnicalAnalysis

logger = logging.getLogger(__name__)


class CacheStore(ABC):
    """Interface for the analysis cache."""

    @abstractmethod
    async def get_latest(self, domain: str) -> Optional[TechnicalAnalysis]:
        """Newest entry for a domain, or None."""

    @abstractmethod
    async def append(self, analysis: TechnicalAnalysis) -> None:
        """Append an entry to the domain's history."""

    @abstractmethod
    def history(
        self,
        domain: str,
        until: Optional[datetime] = None,
    ) -> AsyncIterator[TechnicalAnalysis]:
        """
        Iterate entries with computed_at <= until, oldest first.

        Each call starts a new iteration over a fresh snapshot.
        """

    async def initialize(self) -> None:
        """Open connections, if the backend has any."""

    async def close(self) -> None:
        """Release connections, if the backend has any."""

    async def health_check(self) -> Dict:
        return {"healthy": True, "status": "ok"}


class MemoryCacheStore(CacheStore):
    """
    In-process cache store.

    Each domain maps to an immutable tuple sorted by computed_at. Appends
    build a new tuple under a lock (copy-on-write), so a reader holding the
    old tuple keeps a stable snapshot.
    """

    def __init__(self, config: Optional[CacheConfig] = None):
        self.config = config or CacheConfig(backend="memory")
        self._entries: Dict[str, Tuple[TechnicalAnalysis, ...]] = {}
        self._lock = asyncio.Lock()

    async def get_latest(self, domain: str) -> Optional[TechnicalAnalysis]:
        entries = self._entries.get(domain, ())
        return entries[-1] if entries else None

    async def append(self, analysis: TechnicalAnalysis) -> None:
        if analysis.computed_at is None:
            raise ValueError("Cannot append an analysis without computed_at")

        async with self._lock:
            current = self._entries.get(analysis.domain, ())
            keys = [entry.timestamp for entry in current]
            index = bisect.bisect_right(keys, analysis.timestamp)
            self._entries[analysis.domain] = current[:index] + (analysis,) + current[index:]

        logger.debug(f"Appended analysis for {analysis.domain} at {analysis.computed_at}")

    async def history(
        self,
        domain: str,
        until: Optional[datetime] = None,
    ) -> AsyncIterator[TechnicalAnalysis]:
        snapshot = self._entries.get(domain, ())
        for entry in snapshot:
            if until is not None and entry.computed_at > until:
                break
            yield entry

    async def health_check(self) -> Dict:
        return {
            "healthy": True,
            "status": "memory",
            "domains": len(self._entries),
        }


def create_cache_store(config: CacheConfig) -> CacheStore:
    """Build the cache store selected by configuration."""
    if config.backend == "memory":
        logger.info("Using in-process cache store")
        return MemoryCacheStore(config)
    if config.backend == "redis":
        from .redis_cache import RedisCacheStore
        return RedisCacheStore(config)
    raise ValueError(f"Unknown cache backend: {config.backend}")
