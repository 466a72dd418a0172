# legal_ml/core/cache.py
import json
import logging
import time
from typing import Any, Optional

import redis.asyncio as redis

from legal_ml.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class RedisCache:
    """
    Cache gateway backed by Redis.

    Values are stored as JSON envelopes ``{"data", "timestamp", "ttl"}`` under
    ``<key_prefix><key>`` with a Redis expiry of ``ttl`` seconds. Errors from
    Redis are raised to the caller; fail-open handling lives in
    :class:`legal_ml.services.result_cache.ResultCache`.
    """

    def __init__(self, client: redis.Redis, key_prefix: str = ""):
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RedisCache":
        settings = settings or get_settings()
        client = redis.from_url(settings.redis_url, decode_responses=True)
        return cls(client, key_prefix=settings.cache_key_prefix)

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._client.get(self._key(key))
        if not raw:
            return None

        entry = json.loads(raw)
        age_seconds = time.time() - entry["timestamp"]
        if age_seconds > entry["ttl"]:
            await self.delete(key)
            return None

        logger.debug(f"Cache hit: {key}")
        return entry["data"]

    async def set(self, key: str, value: Any, ttl_seconds: int):
        entry = {
            "data": value,
            "timestamp": time.time(),
            "ttl": ttl_seconds,
        }
        await self._client.setex(self._key(key), ttl_seconds, json.dumps(entry, default=str))
        logger.debug(f"Cache set: {key} (TTL: {ttl_seconds}s)")

    async def delete(self, key: str):
        await self._client.delete(self._key(key))

    async def close(self):
        await self._client.aclose()
