"""
Tests for the Redis cache gateway.
"""
import json
import time
from unittest.mock import AsyncMock

import pytest

from legal_ml.core.cache import RedisCache


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.get.return_value = None
    return client


# ============================================================================
# ENVELOPES
# ============================================================================

class TestRedisCache:
    """Test envelope storage and expiry."""

    @pytest.mark.asyncio
    async def test_set_writes_prefixed_envelope(self, redis_client):
        cache = RedisCache(redis_client, key_prefix="legal_ml:")

        await cache.set("search_suggestions:lease:u1", [{"query": "lease"}], 3600)

        key, ttl, payload = redis_client.setex.call_args.args
        assert key == "legal_ml:search_suggestions:lease:u1"
        assert ttl == 3600
        entry = json.loads(payload)
        assert entry["data"] == [{"query": "lease"}]
        assert entry["ttl"] == 3600

    @pytest.mark.asyncio
    async def test_get_returns_data(self, redis_client):
        redis_client.get.return_value = json.dumps({"data": {"a": 1}, "timestamp": time.time(), "ttl": 60})
        cache = RedisCache(redis_client, key_prefix="legal_ml:")

        assert await cache.get("k") == {"a": 1}
        redis_client.get.assert_awaited_once_with("legal_ml:k")

    @pytest.mark.asyncio
    async def test_get_missing(self, redis_client):
        assert await RedisCache(redis_client).get("k") is None

    @pytest.mark.asyncio
    async def test_expired_entry_is_deleted(self, redis_client):
        redis_client.get.return_value = json.dumps({"data": 1, "timestamp": time.time() - 120, "ttl": 60})
        cache = RedisCache(redis_client, key_prefix="p:")

        assert await cache.get("k") is None
        redis_client.delete.assert_awaited_once_with("p:k")

    @pytest.mark.asyncio
    async def test_errors_propagate(self, redis_client):
        redis_client.get.side_effect = ConnectionError("refused")

        with pytest.raises(ConnectionError):
            await RedisCache(redis_client).get("k")

    @pytest.mark.asyncio
    async def test_close(self, redis_client):
        await RedisCache(redis_client).close()
        redis_client.aclose.assert_awaited_once()
