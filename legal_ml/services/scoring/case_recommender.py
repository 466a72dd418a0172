# legal_ml/services/scoring/case_recommender.py
import logging
from typing import Any, Iterable, List, Optional

from pydantic import TypeAdapter

from legal_ml.models.schemas import (
    CaseRecommendation, ModelType, RecommendationPriority, RecommendationType,
)
from legal_ml.services.collectors import CaseSignalCollector, Row
from legal_ml.services.scoring.base import Clock, ResultPolicy, ScoringModel

logger = logging.getLogger(__name__)

SIMILAR_CASE_CONFIDENCE = 0.8
EXPERT_ASSIGNMENT_CONFIDENCE = 0.9
RESOURCE_ALLOCATION_CONFIDENCE = 0.7


def parse_priority(value: Any) -> RecommendationPriority:
    """Priority from source data; anything unrecognised ranks as low"""
    match str(value or "").strip().lower():
        case "high" | "urgent" | "critical":
            return RecommendationPriority.HIGH
        case "medium" | "normal":
            return RecommendationPriority.MEDIUM
        case _:
            return RecommendationPriority.LOW


def rank_recommendations(recommendations: Iterable[CaseRecommendation],
                         limit: int) -> List[CaseRecommendation]:
    ranked = sorted(
        recommendations,
        key=lambda r: (r.priority.rank, r.confidence),
        reverse=True,
    )
    return ranked[:limit]


class CaseRecommender(ScoringModel):
    """Merges similar-case, expert-assignment and resource-allocation pools"""

    model_type = ModelType.CASE_RECOMMENDATIONS
    policy = ResultPolicy.DEFAULT_ON_FAILURE
    result_adapter = TypeAdapter(List[CaseRecommendation])

    def __init__(self, collector: CaseSignalCollector,
                 cache_ttl: Optional[int] = 3600, clock: Optional[Clock] = None):
        super().__init__(cache_ttl=cache_ttl, clock=clock)
        self.collector = collector

    def cache_key(self, user_id: str, limit: int = 5) -> str:
        return f"case_recommendations:{user_id}"

    def default_result(self) -> List[CaseRecommendation]:
        return []

    def _recommendation(self, row: Row, user_id: str, recommendation_type: RecommendationType,
                        confidence: float, priority: RecommendationPriority) -> CaseRecommendation:
        return CaseRecommendation(
            case_id=row["case_id"],
            user_id=user_id,
            recommendation_type=recommendation_type,
            confidence=confidence,
            reasoning=row.get("reasoning"),
            priority=priority,
            timestamp=self._clock(),
        )

    async def score(self, user_id: str, limit: int = 5) -> List[CaseRecommendation]:
        user_id = str(user_id)
        candidates = [
            self._recommendation(row, user_id, RecommendationType.SIMILAR_CASE,
                                 SIMILAR_CASE_CONFIDENCE, RecommendationPriority.MEDIUM)
            for row in await self.collector.similar_cases(user_id, limit)
        ]
        candidates.extend(
            self._recommendation(row, user_id, RecommendationType.EXPERT_ASSIGNMENT,
                                 EXPERT_ASSIGNMENT_CONFIDENCE, RecommendationPriority.HIGH)
            for row in await self.collector.expert_assignments(user_id, limit)
        )
        candidates.extend(
            self._recommendation(row, user_id, RecommendationType.RESOURCE_ALLOCATION,
                                 RESOURCE_ALLOCATION_CONFIDENCE, parse_priority(row.get("priority")))
            for row in await self.collector.resource_allocations(user_id, limit)
        )

        recommendations = rank_recommendations(candidates, limit)
        logger.info(f"Generated {len(recommendations)} case recommendations for user {user_id}")
        return recommendations
