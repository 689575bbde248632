"""
Cache Configuration

Centralized configuration for the analysis cache.

Technical analyses only change when a page is re-analyzed, so the latest
entry per domain is served for a full day before a recompute is allowed.
History entries never expire.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional


@dataclass(frozen=True)
class CacheTTL:
    """
    Cache TTL configuration by data type.

    Freshness windows, not storage expiry: stale entries stay in the
    history and are only superseded by newer appends.
    """

    TECHNICAL_ANALYSIS: timedelta = timedelta(hours=24)

    # Reads on the history are cheap, page them anyway
    HISTORY_PAGE_SIZE: int = 100


@dataclass
class CacheConfig:
    """
    Main cache configuration.

    Settings can be overridden via environment variables:
    - CACHE_BACKEND: redis | memory
    - CACHE_NAMESPACE: key prefix
    - ANALYSIS_CACHE_TTL_HOURS: freshness window for the latest analysis
    """

    # Backend selection
    backend: str = field(default_factory=lambda: os.getenv("CACHE_BACKEND", "redis"))

    # Cache namespace (for key prefixes)
    namespace: str = field(default_factory=lambda: os.getenv("CACHE_NAMESPACE", "auditflow"))

    # Redis connection
    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379/0"))
    redis_max_connections: int = 20
    redis_socket_timeout: float = 5.0
    redis_connect_timeout: float = 5.0

    # Freshness
    analysis_ttl: timedelta = CacheTTL.TECHNICAL_ANALYSIS
    history_page_size: int = CacheTTL.HISTORY_PAGE_SIZE

    # Hard timeout for a single cache call (seconds)
    operation_timeout: Optional[float] = 10.0

    @classmethod
    def from_settings(cls, settings) -> "CacheConfig":
        """Build from application Settings."""
        return cls(
            backend=settings.CACHE_BACKEND,
            namespace=settings.CACHE_NAMESPACE,
            redis_url=settings.REDIS_URL,
            analysis_ttl=timedelta(hours=settings.ANALYSIS_CACHE_TTL_HOURS),
            operation_timeout=settings.EXTERNAL_CALL_TIMEOUT,
        )
