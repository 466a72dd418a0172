# legal_ml/services/engine.py
"""
Scoring engine: the public surface of the subsystem.

One engine is built per process with explicit persistence and cache
gateways. Each scoring model declares its own failure policy; the engine
applies the result cache and that policy around every call.
"""
import logging
from typing import Any, List, Mapping, Optional

from legal_ml.core.cache import RedisCache
from legal_ml.core.config import Settings, get_settings
from legal_ml.core.database import SQLGateway
from legal_ml.core.exceptions import PredictionException
from legal_ml.core.monitoring import PREDICTION_COUNTER, PREDICTION_LATENCY, record_error, track_latency
from legal_ml.models.schemas import (
    CaseRecommendation, DocumentClassification, FraudAssessment, ModelMetrics,
    SearchSuggestion, UserBehaviorPrediction,
)
from legal_ml.services.collectors import (
    BehaviorSignalCollector, CaseSignalCollector, PersistenceGateway, SearchSignalCollector,
)
from legal_ml.services.result_cache import CacheGateway, ResultCache
from legal_ml.services.scoring import (
    BehaviorPredictor, CaseRecommender, DocumentClassifier, FraudScorer,
    ResultPolicy, ScoringModel, SuggestionRanker,
)
from legal_ml.services.scoring.base import Clock
from legal_ml.services.training_pipeline import TrainingPipeline

logger = logging.getLogger(__name__)


class ScoringEngine:
    def __init__(self, persistence: PersistenceGateway, cache: CacheGateway,
                 settings: Optional[Settings] = None, clock: Optional[Clock] = None):
        self.settings = settings or get_settings()
        self.persistence = persistence
        self.cache = cache
        self.result_cache = ResultCache(cache)

        behavior_signals = BehaviorSignalCollector(
            persistence,
            recent_limit=self.settings.recent_activity_limit,
            pattern_window_days=self.settings.behavior_pattern_window_days,
        )

        self.suggestion_ranker = SuggestionRanker(
            SearchSignalCollector(persistence),
            cache_ttl=self.settings.suggestions_cache_ttl, clock=clock,
        )
        self.behavior_predictor = BehaviorPredictor(
            behavior_signals, cache_ttl=self.settings.behavior_cache_ttl, clock=clock,
        )
        self.document_classifier = DocumentClassifier(
            persistence, cache_ttl=self.settings.document_cache_ttl, clock=clock,
        )
        self.case_recommender = CaseRecommender(
            CaseSignalCollector(persistence),
            cache_ttl=self.settings.case_recommendations_cache_ttl, clock=clock,
        )
        self.fraud_scorer = FraudScorer(
            behavior_signals, persistence,
            threshold=self.settings.fraud_risk_threshold, clock=clock,
        )
        self.training_pipeline = TrainingPipeline(persistence, settings=self.settings, clock=clock)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ScoringEngine":
        settings = settings or get_settings()
        return cls(
            SQLGateway.from_settings(settings),
            RedisCache.from_settings(settings),
            settings=settings,
        )

    async def close(self):
        for resource in (self.cache, self.persistence):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()
        logger.info("Scoring engine closed")

    async def _execute(self, model: ScoringModel, *args, **kwargs) -> Any:
        operation = model.model_type.value
        key = model.cache_key(*args, **kwargs)

        async def compute():
            with track_latency(PREDICTION_LATENCY, operation):
                return await model.score(*args, **kwargs)

        try:
            if key is not None and model.cache_ttl:
                result = await self.result_cache.get_or_compute(
                    key, model.cache_ttl, compute,
                    encode=model.encode, decode=model.decode, operation=operation,
                )
            else:
                result = await compute()
        except Exception as e:
            record_error(e, operation)
            if model.policy is ResultPolicy.DEFAULT_ON_FAILURE:
                logger.error(f"Error in {operation}, returning default result: {e}")
                return model.default_result()
            logger.error(f"Error in {operation}: {e}")
            raise PredictionException(operation, str(e)) from e

        PREDICTION_COUNTER.labels(operation).inc()
        return result

    async def generate_search_suggestions(self, partial_query: str, user_id: Optional[str] = None,
                                          limit: int = 10) -> List[SearchSuggestion]:
        return await self._execute(self.suggestion_ranker, partial_query, user_id, limit)

    async def predict_user_behavior(self, user_id: str) -> UserBehaviorPrediction:
        return await self._execute(self.behavior_predictor, user_id)

    async def classify_document(self, document_id: str, content: str,
                                metadata: Optional[Mapping[str, Any]] = None) -> DocumentClassification:
        return await self._execute(self.document_classifier, document_id, content, metadata)

    async def generate_case_recommendations(self, user_id: str,
                                            limit: int = 5) -> List[CaseRecommendation]:
        return await self._execute(self.case_recommender, user_id, limit)

    async def detect_fraud(self, user_id: str, activity: Mapping[str, Any]) -> FraudAssessment:
        return await self._execute(self.fraud_scorer, user_id, activity)

    async def train_models(self):
        await self.training_pipeline.run()

    async def get_model_performance(self) -> List[ModelMetrics]:
        try:
            return await self.training_pipeline.model_performance()
        except Exception as e:
            logger.error(f"Error getting model performance: {e}")
            record_error(e, "model_performance")
            raise PredictionException("model_performance", str(e)) from e
