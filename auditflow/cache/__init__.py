"""
Auditflow Caching Layer

Append-only, per-domain history of technical SEO analyses, read
cache-aside by the analysis engine:

- CacheStore: get_latest / append / history interface
- RedisCacheStore: sorted set per domain, shared across processes
- MemoryCacheStore: copy-on-write tuples, single process and tests

Usage:
    store = create_cache_store(CacheConfig.from_settings(settings))
    await store.initialize()

    latest = await store.get_latest("example.com")
    async for entry in store.history("example.com", until=utcnow()):
        ...
"""

from auditflow.cache.config import CacheConfig, CacheTTL
from auditflow.cache.models import TechnicalAnalysis
from auditflow.cache.store import CacheStore, MemoryCacheStore, create_cache_store
from auditflow.cache.redis_cache import RedisCacheStore

__all__ = [
    # Config
    "CacheConfig",
    "CacheTTL",
    # Entries
    "TechnicalAnalysis",
    # Stores
    "CacheStore",
    "MemoryCacheStore",
    "RedisCacheStore",
    "create_cache_store",
]
