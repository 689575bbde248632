"""
Redis Analysis History

Each domain's history is a sorted set scored by computed_at (epoch
seconds); members are serialized TechnicalAnalysis entries. Appends are a
single ZADD, so concurrent writers never clobber each other, and history
reads page through a score range fixed when iteration starts.

Every command runs under the configured hard timeout.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError

from auditflow.errors import StorageTimeoutError
from auditflow.utils.clock import utcnow
from auditflow.utils.retry import with_timeout
from .config import CacheConfig
from .models import TechnicalAnalysis, epoch_seconds, serialize_analysis, deserialize_analysis
from .store import CacheStore

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Counters per history operation."""
    hits: int = 0
    misses: int = 0
    appends: int = 0
    history_pages: int = 0
    errors: int = 0
    last_error: Optional[str] = None

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class RedisCacheStore(CacheStore):
    """
    Redis-backed analysis history.

    get_latest degrades to a miss when Redis is unavailable (the caller then
    recomputes); append and history surface StorageTimeoutError so the
    owning activity can retry or fail.
    """

    def __init__(self, config: Optional[CacheConfig] = None, redis: Optional[Redis] = None):
        self.config = config or CacheConfig()
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = redis
        self._stats = CacheStats()
        self._connect_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._redis is not None

    async def initialize(self):
        """Open the connection pool and check the server answers."""
        if self.connected:
            return

        async with self._connect_lock:
            if self.connected:
                return
            pool = ConnectionPool.from_url(
                self.config.redis_url,
                max_connections=self.config.redis_max_connections,
                socket_timeout=self.config.redis_socket_timeout,
                socket_connect_timeout=self.config.redis_connect_timeout,
            )
            client = Redis(connection_pool=pool)
            try:
                await client.ping()
            except RedisError as e:
                await pool.disconnect()
                logger.error(f"Redis at {self.config.redis_url} unreachable: {e}")
                raise StorageTimeoutError(f"Cache unreachable: {e}")
            self._pool, self._redis = pool, client
            logger.info(f"Analysis history on Redis {self.config.redis_url} (namespace {self.config.namespace})")

    async def close(self):
        if self._redis is not None:
            await self._redis.close()
        if self._pool is not None:
            await self._pool.disconnect()
        self._redis = self._pool = None

    def history_key(self, domain: str) -> str:
        return f"{self.config.namespace}:technical-analysis:{domain}"

    async def _call(self, command: Callable[[], Awaitable[Any]], what: str) -> Any:
        """Run one Redis command under the hard timeout."""
        await self.initialize()
        try:
            return await with_timeout(
                command(), self.config.operation_timeout, StorageTimeoutError, f"Cache {what}"
            )
        except RedisError as e:
            self._record_error(e)
            raise StorageTimeoutError(f"Cache {what} failed: {e}")
        except StorageTimeoutError as e:
            self._record_error(e)
            raise

    def _record_error(self, error: Exception):
        self._stats.errors += 1
        self._stats.last_error = str(error)

    # =========================================================================
    # CacheStore interface
    # =========================================================================

    async def get_latest(self, domain: str) -> Optional[TechnicalAnalysis]:
        key = self.history_key(domain)
        try:
            members = await self._call(
                lambda: self._redis.zrevrangebyscore(key, "+inf", "-inf", start=0, num=1),
                f"get_latest({domain})",
            )
        except StorageTimeoutError as e:
            logger.warning(f"Redis unavailable, treating {domain} as a miss: {e}")
            return None

        if not members:
            self._stats.misses += 1
            return None

        self._stats.hits += 1
        return deserialize_analysis(members[0])

    async def append(self, analysis: TechnicalAnalysis) -> None:
        if analysis.computed_at is None:
            raise ValueError("Cannot append an analysis without computed_at")

        key = self.history_key(analysis.domain)
        await self._call(
            lambda: self._redis.zadd(key, {serialize_analysis(analysis): analysis.timestamp}),
            f"append({analysis.domain})",
        )
        self._stats.appends += 1
        logger.debug(f"Appended analysis for {analysis.domain} at {analysis.computed_at}")

    async def history(
        self,
        domain: str,
        until: Optional[datetime] = None,
    ) -> AsyncIterator[TechnicalAnalysis]:
        key = self.history_key(domain)
        # Upper bound fixed at iteration start; later appends fall outside it
        max_score = epoch_seconds(until or utcnow())
        page_size = self.config.history_page_size
        offset = 0

        while True:
            members = await self._call(
                lambda: self._redis.zrangebyscore(key, "-inf", max_score, start=offset, num=page_size),
                f"history({domain})",
            )
            self._stats.history_pages += 1
            for member in members:
                yield deserialize_analysis(member)
            if len(members) < page_size:
                return
            offset += page_size


    # =========================================================================
    # Statistics and Health
    # =========================================================================

    def get_stats(self) -> Dict:
        return {
            "connected": self.connected,
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "appends": self._stats.appends,
            "history_pages": self._stats.history_pages,
            "errors": self._stats.errors,
            "last_error": self._stats.last_error,
            "hit_rate_percent": round(self._stats.hit_rate * 100, 2),
        }

    async def health_check(self) -> Dict:
        """Ping Redis; never raises."""
        try:
            await self.initialize()
            started = time.monotonic()
            await with_timeout(self._redis.ping(), self.config.operation_timeout, StorageTimeoutError, "Cache ping")
        except (RedisError, StorageTimeoutError) as e:
            return {"healthy": False, "status": "error", "error": str(e), "stats": self.get_stats()}
        return {
            "healthy": True,
            "status": "connected",
            "ping_ms": round((time.monotonic() - started) * 1000, 2),
            "stats": self.get_stats(),
        }
