"""
Tests for search suggestion ranking.
"""
import pytest

from legal_ml.models.schemas import SearchSuggestion
from legal_ml.services.collectors import SearchSignalCollector
from legal_ml.services.engine import ScoringEngine
from legal_ml.services.scoring.suggestion_ranker import (
    SuggestionRanker, deduplicate_suggestions, rank_suggestions,
)
from tests.conftest import FakeCache, FakeGateway


POPULAR = SearchSignalCollector.POPULAR_SEARCHES
HISTORY = SearchSignalCollector.USER_SEARCH_HISTORY
CONTENT = SearchSignalCollector.CONTENT_MATCHES


# ============================================================================
# DEDUPLICATION AND ORDERING
# ============================================================================

class TestRanking:
    """Test dedup and stable ordering helpers."""

    def test_dedup_keeps_first_occurrence(self):
        suggestions = [
            SearchSuggestion(query="Smith Contract", relevance=0.3),
            SearchSuggestion(query="smith contract", relevance=0.9),
        ]
        result = deduplicate_suggestions(suggestions)
        assert len(result) == 1
        assert result[0].query == "Smith Contract"
        assert result[0].relevance == 0.3

    def test_equal_relevance_keeps_collection_order(self):
        suggestions = [
            SearchSuggestion(query="alpha", relevance=0.5),
            SearchSuggestion(query="beta", relevance=0.5),
            SearchSuggestion(query="gamma", relevance=0.7),
        ]
        result = rank_suggestions(suggestions, limit=10)
        assert [s.query for s in result] == ["gamma", "alpha", "beta"]

    def test_truncates_to_limit(self):
        suggestions = [SearchSuggestion(query=f"q{i}", relevance=i / 10) for i in range(5)]
        assert len(rank_suggestions(suggestions, limit=2)) == 2


# ============================================================================
# SCORING
# ============================================================================

class TestSuggestionRanker:
    """Test candidate pooling."""

    @pytest.mark.asyncio
    async def test_user_history_is_boosted(self):
        gateway = FakeGateway(rows={
            HISTORY: [{"query": "lease dispute", "frequency": 2, "relevance": 0.5}],
        })
        ranker = SuggestionRanker(SearchSignalCollector(gateway))

        result = await ranker.score("lease", user_id="u1")

        assert result[0].query == "lease dispute"
        assert result[0].relevance == pytest.approx(0.6)

    @pytest.mark.asyncio
    async def test_anonymous_skips_history(self):
        gateway = FakeGateway()
        ranker = SuggestionRanker(SearchSignalCollector(gateway))

        await ranker.score("lease")

        assert gateway.calls_for(HISTORY) == []
        assert len(gateway.calls_for(POPULAR)) == 1
        assert len(gateway.calls_for(CONTENT)) == 1

    @pytest.mark.asyncio
    async def test_global_match_wins_over_boosted_history_duplicate(self):
        gateway = FakeGateway(rows={
            POPULAR: [{"query": "Divorce Filing", "frequency": 8, "relevance": 0.3}],
            HISTORY: [{"query": "divorce filing", "frequency": 2, "relevance": 0.9}],
        })
        ranker = SuggestionRanker(SearchSignalCollector(gateway))

        result = await ranker.score("divorce", user_id="u1")

        assert len(result) == 1
        assert result[0].query == "Divorce Filing"
        assert result[0].frequency == 8
        assert result[0].relevance == 0.3

    @pytest.mark.asyncio
    async def test_global_match_wins_over_higher_content_duplicate(self):
        gateway = FakeGateway(rows={
            POPULAR: [{"query": "Acme Merger", "frequency": 5, "relevance": 0.2}],
            CONTENT: [{"query": "acme merger", "frequency": 1, "relevance": 0.95, "category": "case"}],
        })
        ranker = SuggestionRanker(SearchSignalCollector(gateway))

        result = await ranker.score("acme")

        assert len(result) == 1
        assert result[0].query == "Acme Merger"
        assert result[0].frequency == 5


# ============================================================================
# ENGINE INTEGRATION
# ============================================================================

class TestSuggestionEngine:
    """Test caching and best-effort failure handling."""

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, settings):
        gateway = FakeGateway(rows={POPULAR: [{"query": "estate plan", "frequency": 3, "relevance": 0.4}]})
        cache = FakeCache()
        engine = ScoringEngine(gateway, cache, settings=settings)

        first = await engine.generate_search_suggestions("estate", user_id="u1")
        calls = len(gateway.calls)
        second = await engine.generate_search_suggestions("estate", user_id="u1")

        assert len(gateway.calls) == calls
        assert second == first
        assert "search_suggestions:estate:u1" in cache.store
        assert cache.ttls["search_suggestions:estate:u1"] == 3600

    @pytest.mark.asyncio
    async def test_anonymous_cache_key(self, settings):
        cache = FakeCache()
        engine = ScoringEngine(FakeGateway(), cache, settings=settings)

        await engine.generate_search_suggestions("will")

        assert "search_suggestions:will:anonymous" in cache.store

    @pytest.mark.asyncio
    async def test_failure_returns_empty_list(self, settings):
        gateway = FakeGateway(failures={POPULAR: RuntimeError("db down")})
        engine = ScoringEngine(gateway, FakeCache(), settings=settings)

        assert await engine.generate_search_suggestions("x") == []
