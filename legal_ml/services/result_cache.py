# legal_ml/services/result_cache.py
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from legal_ml.core.monitoring import CACHE_LOOKUPS

logger = logging.getLogger(__name__)


class CacheGateway(Protocol):
    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int):
        ...


class ResultCache:
    """
    Read-through cache around scoring operations.

    Cache trouble never reaches the caller: a failed read or an undecodable
    entry is a miss, a failed write is logged and ignored. Concurrent misses
    on the same key may both compute.
    """

    def __init__(self, cache: CacheGateway):
        self.cache = cache

    async def get_or_compute(self, key: str, ttl_seconds: int,
                             compute: Callable[[], Awaitable[Any]],
                             encode: Callable[[Any], Any] = lambda value: value,
                             decode: Callable[[Any], Any] = lambda value: value,
                             operation: str = "unknown") -> Any:
        cached = await self._lookup(key, decode, operation)
        if cached is not None:
            return cached

        result = await compute()

        try:
            await self.cache.set(key, encode(result), ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache set failed for {key}: {e}")
            CACHE_LOOKUPS.labels(operation=operation, outcome="error").inc()

        return result

    async def _lookup(self, key: str, decode: Callable[[Any], Any], operation: str) -> Optional[Any]:
        try:
            payload = await self.cache.get(key)
            if payload is None:
                CACHE_LOOKUPS.labels(operation=operation, outcome="miss").inc()
                return None
            value = decode(payload)
        except Exception as e:
            logger.warning(f"Cache get failed for {key}, recomputing: {e}")
            CACHE_LOOKUPS.labels(operation=operation, outcome="error").inc()
            return None

        CACHE_LOOKUPS.labels(operation=operation, outcome="hit").inc()
        return value
