"""In-memory TTL + LRU cache for validated LLM responses."""

import time
from collections import OrderedDict
from typing import Any, Callable, Dict

from algovista_service_libs.logging_utils import create_service_logger

from services.algovista_service.config import Settings
from services.algovista_service.metrics import get_metrics
from services.algovista_service.protocols import ResponseCacheProtocol

logger = create_service_logger("algovista_service.local_cache")


class LocalCacheManagerImpl(ResponseCacheProtocol):
    """Look-aside cache keyed by ``prompt_utils.compute_cache_key``.

    Entries expire after their TTL; when full, the least recently used entry
    is evicted.
    """

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.monotonic):
        """Initialize local cache manager.

        Args:
            settings: Service settings
            clock: Monotonic time source (replaceable in tests)
        """
        self.settings = settings
        self.max_entries = settings.RESPONSE_CACHE_MAX_ENTRIES
        self.default_ttl = settings.RESPONSE_CACHE_TTL_SECONDS
        self._clock = clock

        # key -> (expires_at, value)
        self._cache: OrderedDict[str, tuple[float, Dict[str, Any]]] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._metrics = get_metrics()

        logger.info(
            f"Local response cache initialized: max_entries={self.max_entries}, "
            f"default_ttl={self.default_ttl}s"
        )

    async def get(self, key: str) -> Dict[str, Any] | None:
        """Get value from local cache.

        Args:
            key: Cache key to retrieve

        Returns:
            Cached response dict or None if not found/expired
        """
        entry = self._cache.get(key)
        if entry is None:
            return self._record_miss(key)

        expires_at, value = entry
        if self._clock() >= expires_at:
            logger.debug(f"Local cache entry expired for key: {key}")
            del self._cache[key]
            return self._record_miss(key)

        # Move to end (mark as recently used)
        self._cache.move_to_end(key)
        self._hits += 1
        self._metrics["cache_lookups_total"].labels(result="hit").inc()
        logger.debug(f"Local cache hit for key: {key}")
        return dict(value)

    async def set(self, key: str, value: Dict[str, Any], ttl: int | None = None) -> None:
        """Set value in local cache with TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (defaults to RESPONSE_CACHE_TTL_SECONDS)
        """
        expires_at = self._clock() + (ttl if ttl is not None else self.default_ttl)

        self._cache.pop(key, None)
        while len(self._cache) >= self.max_entries:
            lru_key, _ = self._cache.popitem(last=False)
            logger.debug(f"Evicting LRU entry: {lru_key}")

        self._cache[key] = (expires_at, dict(value))

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def clear(self) -> None:
        """Clear all cached values."""
        entry_count = len(self._cache)
        self._cache.clear()
        logger.info(f"Local cache cleared: {entry_count} entries removed")

    async def get_stats(self) -> Dict[str, Any]:
        """Get local cache statistics."""
        now = self._clock()
        expired_count = sum(1 for expires_at, _ in self._cache.values() if now >= expires_at)
        lookups = self._hits + self._misses

        return {
            "backend": "local_memory",
            "total_keys": len(self._cache),
            "expired_keys": expired_count,
            "max_entries": self.max_entries,
            "default_ttl": self.default_ttl,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / lookups if lookups else 0.0,
        }

    def _record_miss(self, key: str) -> None:
        self._misses += 1
        self._metrics["cache_lookups_total"].labels(result="miss").inc()
        logger.debug(f"Local cache miss for key: {key}")
        return None
