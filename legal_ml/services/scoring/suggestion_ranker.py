# legal_ml/services/scoring/suggestion_ranker.py
import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import TypeAdapter

from legal_ml.models.schemas import ModelType, SearchSuggestion
from legal_ml.services.collectors import SearchSignalCollector
from legal_ml.services.scoring.base import Clock, ResultPolicy, ScoringModel

logger = logging.getLogger(__name__)

USER_HISTORY_BOOST = 1.2


def suggestion_from_row(row: Dict[str, Any], boost: float = 1.0) -> SearchSuggestion:
    return SearchSuggestion(
        query=row["query"],
        frequency=int(row.get("frequency") or 0),
        relevance=float(row.get("relevance") or 0.0) * boost,
        category=row.get("category"),
        timestamp=row.get("timestamp"),
    )


def deduplicate_suggestions(suggestions: Iterable[SearchSuggestion]) -> List[SearchSuggestion]:
    """Keep the first suggestion seen for each case-insensitive query"""
    seen = set()
    unique = []
    for suggestion in suggestions:
        key = suggestion.query.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(suggestion)
    return unique


def rank_suggestions(suggestions: Iterable[SearchSuggestion], limit: int) -> List[SearchSuggestion]:
    # sorted() is stable, equal relevance keeps collection order
    return sorted(suggestions, key=lambda s: s.relevance, reverse=True)[:limit]


class SuggestionRanker(ScoringModel):
    """Ranks search suggestions from popularity, personal history and content titles"""

    model_type = ModelType.SEARCH_SUGGESTIONS
    policy = ResultPolicy.DEFAULT_ON_FAILURE
    result_adapter = TypeAdapter(List[SearchSuggestion])

    def __init__(self, collector: SearchSignalCollector,
                 cache_ttl: Optional[int] = 3600, clock: Optional[Clock] = None):
        super().__init__(cache_ttl=cache_ttl, clock=clock)
        self.collector = collector

    def cache_key(self, partial_query: str, user_id: Optional[str] = None, limit: int = 10) -> str:
        return f"search_suggestions:{partial_query}:{user_id or 'anonymous'}"

    def default_result(self) -> List[SearchSuggestion]:
        return []

    async def score(self, partial_query: str, user_id: Optional[str] = None,
                    limit: int = 10) -> List[SearchSuggestion]:
        candidates = [
            suggestion_from_row(row)
            for row in await self.collector.popular_searches(partial_query, limit)
        ]

        if user_id:
            history = await self.collector.user_search_history(user_id, partial_query, limit)
            candidates.extend(suggestion_from_row(row, boost=USER_HISTORY_BOOST) for row in history)

        content = await self.collector.content_matches(partial_query, limit)
        candidates.extend(suggestion_from_row(row) for row in content)

        suggestions = rank_suggestions(deduplicate_suggestions(candidates), limit)
        logger.info(f"Generated {len(suggestions)} search suggestions for query: {partial_query}")
        return suggestions
