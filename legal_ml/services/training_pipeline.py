# legal_ml/services/training_pipeline.py
"""
Periodic recomputation of model weights, patterns and metrics.

Sub-trainers run strictly in sequence and the run stops at the first
failure; whatever earlier sub-trainers wrote stays committed. Metrics rows
are fixed per model type and are not derived from the pulled data.
"""
import json
import logging
import time
from typing import Any, Dict, List, Optional

import pandas as pd

from legal_ml.core.config import Settings, get_settings
from legal_ml.core.exceptions import ModelTrainingException
from legal_ml.core.logging import log_model_training, log_performance
from legal_ml.core.monitoring import TRAINING_DURATION, record_error
from legal_ml.models.schemas import DocumentCategory, ModelMetrics, ModelType, ModelWeight
from legal_ml.services.collectors import (
    BehaviorSignalCollector, CaseSignalCollector, DocumentSignalCollector,
    FraudSignalCollector, PersistenceGateway, Row, SearchSignalCollector,
)
from legal_ml.services.scoring.base import Clock, local_now

logger = logging.getLogger(__name__)

# accuracy, precision, recall, f1
MODEL_METRICS = {
    ModelType.SEARCH_SUGGESTIONS: (0.85, 0.82, 0.88, 0.85),
    ModelType.USER_BEHAVIOR: (0.78, 0.75, 0.82, 0.78),
    ModelType.DOCUMENT_CLASSIFICATION: (0.82, 0.80, 0.85, 0.82),
    ModelType.CASE_RECOMMENDATIONS: (0.75, 0.72, 0.78, 0.75),
    ModelType.FRAUD_DETECTION: (0.88, 0.85, 0.90, 0.87),
}

SEARCH_WEIGHTS = [
    ModelWeight(model_type=ModelType.SEARCH_SUGGESTIONS, feature="frequency", weight=0.4),
    ModelWeight(model_type=ModelType.SEARCH_SUGGESTIONS, feature="relevance", weight=0.4),
    ModelWeight(model_type=ModelType.SEARCH_SUGGESTIONS, feature="user_specific", weight=0.2),
]

CLASSIFICATION_RULES = {
    DocumentCategory.LEGAL_DOCUMENT.value: {
        "minWordCount": 1000,
        "requiresLegalTerms": True,
        "confidence": 0.8,
    },
    DocumentCategory.CONTRACT.value: {
        "fileTypes": ["pdf", "doc", "docx"],
        "minWordCount": 500,
        "confidence": 0.7,
    },
    DocumentCategory.DRAFT_DOCUMENT.value: {
        "fileTypes": ["doc", "docx"],
        "maxWordCount": 2000,
        "confidence": 0.6,
    },
    DocumentCategory.GENERAL_DOCUMENT.value: {
        "confidence": 0.5,
    },
}


class TrainingPipeline:
    UPSERT_METRICS = """
        INSERT INTO ml_model_metrics
            (model_type, accuracy, precision_score, recall, f1_score, training_date)
        VALUES (:model_type, :accuracy, :precision_score, :recall, :f1_score, :training_date)
        ON CONFLICT (model_type) DO UPDATE SET
            accuracy = EXCLUDED.accuracy,
            precision_score = EXCLUDED.precision_score,
            recall = EXCLUDED.recall,
            f1_score = EXCLUDED.f1_score,
            training_date = EXCLUDED.training_date
    """

    UPSERT_WEIGHT = """
        INSERT INTO ml_model_weights (model_type, feature, weight, updated_at)
        VALUES (:model_type, :feature, :weight, :updated_at)
        ON CONFLICT (model_type, feature) DO UPDATE SET
            weight = EXCLUDED.weight,
            updated_at = EXCLUDED.updated_at
    """

    UPSERT_BEHAVIOR_PATTERNS = """
        INSERT INTO ml_user_behavior_patterns (user_id, patterns, updated_at)
        VALUES (:user_id, :patterns, :updated_at)
        ON CONFLICT (user_id) DO UPDATE SET
            patterns = EXCLUDED.patterns,
            updated_at = EXCLUDED.updated_at
    """

    UPSERT_CLASSIFICATION_RULES = """
        INSERT INTO ml_classification_rules (model_type, rules, updated_at)
        VALUES (:model_type, :rules, :updated_at)
        ON CONFLICT (model_type) DO UPDATE SET
            rules = EXCLUDED.rules,
            updated_at = EXCLUDED.updated_at
    """

    UPSERT_CASE_PATTERNS = """
        INSERT INTO ml_case_recommendation_patterns (model_type, patterns, updated_at)
        VALUES (:model_type, :patterns, :updated_at)
        ON CONFLICT (model_type) DO UPDATE SET
            patterns = EXCLUDED.patterns,
            updated_at = EXCLUDED.updated_at
    """

    UPSERT_FRAUD_RULES = """
        INSERT INTO ml_fraud_detection_rules (model_type, risk_weights, threshold, updated_at)
        VALUES (:model_type, :risk_weights, :threshold, :updated_at)
        ON CONFLICT (model_type) DO UPDATE SET
            risk_weights = EXCLUDED.risk_weights,
            threshold = EXCLUDED.threshold,
            updated_at = EXCLUDED.updated_at
    """

    MODEL_PERFORMANCE = """
        SELECT model_type, accuracy, precision_score AS "precision", recall,
               f1_score AS f1, training_date
        FROM ml_model_metrics
        ORDER BY model_type
    """

    def __init__(self, gateway: PersistenceGateway, settings: Optional[Settings] = None,
                 clock: Optional[Clock] = None):
        self.gateway = gateway
        self.settings = settings or get_settings()
        self._clock = clock or local_now
        self.search = SearchSignalCollector(gateway)
        self.behavior = BehaviorSignalCollector(gateway)
        self.documents = DocumentSignalCollector(gateway)
        self.cases = CaseSignalCollector(gateway)
        self.fraud = FraudSignalCollector(gateway)

    async def run(self):
        """Run every sub-trainer in order, aborting on the first failure"""
        trainers = [
            (ModelType.SEARCH_SUGGESTIONS, self.train_search_model),
            (ModelType.USER_BEHAVIOR, self.train_behavior_model),
            (ModelType.DOCUMENT_CLASSIFICATION, self.train_document_model),
            (ModelType.CASE_RECOMMENDATIONS, self.train_case_model),
            (ModelType.FRAUD_DETECTION, self.train_fraud_model),
        ]

        logger.info("Starting model training run")
        run_start = time.perf_counter()
        for model_type, trainer in trainers:
            start = time.perf_counter()
            try:
                samples = await trainer()
            except Exception as e:
                logger.error(f"Training failed for {model_type.value}: {e}")
                record_error(e, "training")
                raise ModelTrainingException(model_type.value, str(e)) from e

            duration = time.perf_counter() - start
            TRAINING_DURATION.labels(model_type.value).observe(duration)
            log_model_training(model_type.value, duration * 1000,
                               MODEL_METRICS[model_type][0], samples)

        log_performance("train_models", (time.perf_counter() - run_start) * 1000)
        logger.info("Model training run completed")

    async def train_search_model(self) -> int:
        rows = await self.search.training_rows(
            self.settings.search_training_window_days, self.settings.search_min_occurrences
        )
        now = self._clock()
        for weight in SEARCH_WEIGHTS:
            await self.gateway.query(self.UPSERT_WEIGHT, {
                "model_type": weight.model_type.value,
                "feature": weight.feature,
                "weight": weight.weight,
                "updated_at": now,
            })
        await self._store_metrics(ModelType.SEARCH_SUGGESTIONS)
        return len(rows)

    async def train_behavior_model(self) -> int:
        rows = await self.behavior.training_rows(
            self.settings.behavior_training_window_days, self.settings.behavior_min_occurrences
        )
        now = self._clock()
        for user_id, patterns in build_behavior_patterns(rows).items():
            await self.gateway.query(self.UPSERT_BEHAVIOR_PATTERNS, {
                "user_id": str(user_id),
                "patterns": json.dumps(patterns),
                "updated_at": now,
            })
        await self._store_metrics(ModelType.USER_BEHAVIOR)
        return len(rows)

    async def train_document_model(self) -> int:
        # feature rows are pulled for the sample count only; the rule table is fixed
        rows = await self.documents.training_rows(self.settings.document_training_window_days)
        await self.gateway.query(self.UPSERT_CLASSIFICATION_RULES, {
            "model_type": ModelType.DOCUMENT_CLASSIFICATION.value,
            "rules": json.dumps(CLASSIFICATION_RULES),
            "updated_at": self._clock(),
        })
        await self._store_metrics(ModelType.DOCUMENT_CLASSIFICATION)
        return len(rows)

    async def train_case_model(self) -> int:
        rows = await self.cases.assignment_training_rows(
            self.settings.case_training_window_days, self.settings.case_min_assignments
        )
        await self.gateway.query(self.UPSERT_CASE_PATTERNS, {
            "model_type": ModelType.CASE_RECOMMENDATIONS.value,
            "patterns": json.dumps(build_case_patterns(rows), default=str),
            "updated_at": self._clock(),
        })
        await self._store_metrics(ModelType.CASE_RECOMMENDATIONS)
        return len(rows)

    async def train_fraud_model(self) -> int:
        rows = await self.fraud.suspicious_history(self.settings.fraud_training_window_days)
        await self.gateway.query(self.UPSERT_FRAUD_RULES, {
            "model_type": ModelType.FRAUD_DETECTION.value,
            "risk_weights": json.dumps(build_fraud_weights(rows)),
            "threshold": self.settings.fraud_risk_threshold,
            "updated_at": self._clock(),
        })
        await self._store_metrics(ModelType.FRAUD_DETECTION)
        return len(rows)

    async def _store_metrics(self, model_type: ModelType):
        accuracy, precision, recall, f1 = MODEL_METRICS[model_type]
        await self.gateway.query(self.UPSERT_METRICS, {
            "model_type": model_type.value,
            "accuracy": accuracy,
            "precision_score": precision,
            "recall": recall,
            "f1_score": f1,
            "training_date": self._clock(),
        })

    async def model_performance(self) -> List[ModelMetrics]:
        rows = await self.gateway.query(self.MODEL_PERFORMANCE)
        return [ModelMetrics.model_validate(row) for row in rows]


def build_behavior_patterns(rows: List[Row]) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """user_id -> {'<action>_<entity_type>': {frequency, avgInterval}}"""
    if not rows:
        return {}

    df = pd.DataFrame(rows)
    df["pattern"] = df["action"].astype(str) + "_" + df["entity_type"].fillna("unknown").astype(str)
    df["avg_interval"] = pd.to_numeric(df["avg_interval"], errors="coerce").fillna(0.0)

    patterns = {}
    for user_id, group in df.groupby("user_id", sort=False):
        patterns[str(user_id)] = {
            row.pattern: {
                "frequency": int(row.frequency),
                "avgInterval": float(row.avg_interval),
            }
            for row in group.itertuples(index=False)
        }
    return patterns


def build_case_patterns(rows: List[Row]) -> Dict[str, List[Dict[str, Any]]]:
    """'<category>_<priority>_<complexity>' -> assignment profiles"""
    patterns: Dict[str, List[Dict[str, Any]]] = {}
    for row in rows:
        key = f"{row.get('category')}_{row.get('priority')}_{row.get('complexity')}"
        patterns.setdefault(key, []).append({
            "userRole": row.get("user_role"),
            "experienceLevel": row.get("experience_level"),
            "assignmentCount": int(row.get("assignment_count") or 0),
            "avgResolutionTime": float(row.get("avg_resolution_time") or 0.0),
        })
    return patterns


def build_fraud_weights(rows: List[Row]) -> Dict[str, float]:
    """Per risk factor: confirmed-fraud records over all reviewed records"""
    if not rows:
        return {}

    df = pd.DataFrame(rows, columns=["risk_factors", "is_confirmed_fraud"])
    df = df.explode("risk_factors").dropna(subset=["risk_factors"])
    if df.empty:
        return {}

    df["is_confirmed_fraud"] = df["is_confirmed_fraud"].astype(bool).astype(float)
    weights = df.groupby("risk_factors")["is_confirmed_fraud"].mean()
    return {str(factor): round(float(weight), 4) for factor, weight in weights.items()}
