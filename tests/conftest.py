"""
Shared test fixtures: in-memory persistence and cache gateways, a fixed clock.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from legal_ml.core.config import Settings


class FakeGateway:
    """Persistence gateway returning canned rows per statement and recording calls"""

    def __init__(self, rows: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 failures: Optional[Dict[str, Exception]] = None):
        self.rows = rows or {}
        self.failures = failures or {}
        self.calls = []

    async def query(self, statement: str, params: Optional[Dict[str, Any]] = None):
        self.calls.append((statement, dict(params or {})))
        if statement in self.failures:
            raise self.failures[statement]
        return [dict(row) for row in self.rows.get(statement, [])]

    def calls_for(self, statement: str) -> List[Dict[str, Any]]:
        return [params for called, params in self.calls if called == statement]


class FakeCache:
    """Dict-backed cache gateway with switchable failures"""

    def __init__(self, fail_get: bool = False, fail_set: bool = False):
        self.store = {}
        self.ttls = {}
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.closed = False

    async def get(self, key: str):
        if self.fail_get:
            raise ConnectionError("cache unavailable")
        return self.store.get(key)

    async def set(self, key: str, value: Any, ttl_seconds: int):
        if self.fail_set:
            raise ConnectionError("cache unavailable")
        self.store[key] = value
        self.ttls[key] = ttl_seconds

    async def close(self):
        self.closed = True


# =============================================================================
# Core Fixtures
# =============================================================================

FIXED_NOW = datetime(2026, 10, 19, 2, 0, tzinfo=timezone.utc)
DAYTIME_NOW = datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(database_url="sqlite+aiosqlite:///./test_legal_ml.db", enable_structured_logging=False)


@pytest.fixture
def night_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def day_clock():
    return lambda: DAYTIME_NOW


@pytest.fixture
def cache():
    return FakeCache()
