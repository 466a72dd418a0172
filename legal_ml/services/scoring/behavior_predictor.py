# legal_ml/services/scoring/behavior_predictor.py
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter

from legal_ml.core.logging import log_prediction
from legal_ml.models.schemas import BehaviorPattern, ModelType, UserBehaviorPrediction
from legal_ml.services.collectors import BehaviorSignalCollector
from legal_ml.services.scoring.base import Clock, ResultPolicy, ScoringModel

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "view_dashboard"
MAX_CONFIDENCE = 0.9


def predict_next_action(recent_activities: List[Dict[str, Any]]) -> str:
    """Most frequent recent action; ties go to the action seen first"""
    counts = Counter(activity["action"] for activity in recent_activities if activity.get("action"))
    if not counts:
        return DEFAULT_ACTION
    # most_common keeps insertion order among equal counts
    return counts.most_common(1)[0][0]


def next_best_action(predicted_action: str) -> str:
    match predicted_action:
        case "view_cases":
            return "create_case"
        case "view_clients":
            return "add_client"
        case "view_documents":
            return "upload_document"
        case "view_time_entries":
            return "start_timer"
        case "view_invoices":
            return "create_invoice"
        case _:
            return DEFAULT_ACTION


def recommendations_for(predicted_action: str) -> List[str]:
    match predicted_action:
        case "view_cases":
            return [
                "Consider creating a new case",
                "Review pending cases",
                "Update case status",
            ]
        case "view_clients":
            return [
                "Add new client information",
                "Update client details",
                "Schedule client meeting",
            ]
        case "view_documents":
            return [
                "Upload new documents",
                "Organize document folders",
                "Review document security",
            ]
        case _:
            return [
                "Check your dashboard",
                "Review recent activities",
            ]


def behavior_confidence(recent_activity_count: int, pattern_action_count: int) -> float:
    return min(MAX_CONFIDENCE, (recent_activity_count / 100) * (pattern_action_count / 10))


class BehaviorPredictor(ScoringModel):
    """Predicts a user's next action from recent activity and 30-day patterns"""

    model_type = ModelType.USER_BEHAVIOR
    policy = ResultPolicy.STRICT
    result_adapter = TypeAdapter(UserBehaviorPrediction)

    def __init__(self, collector: BehaviorSignalCollector,
                 cache_ttl: Optional[int] = 1800, clock: Optional[Clock] = None):
        super().__init__(cache_ttl=cache_ttl, clock=clock)
        self.collector = collector

    def cache_key(self, user_id: str) -> str:
        return f"user_behavior_prediction:{user_id}"

    async def score(self, user_id: str) -> UserBehaviorPrediction:
        recent_activities = await self.collector.recent_activities(user_id)
        patterns: Dict[str, BehaviorPattern] = await self.collector.behavior_patterns(user_id)

        predicted_action = predict_next_action(recent_activities)
        prediction = UserBehaviorPrediction(
            user_id=str(user_id),
            predicted_action=predicted_action,
            confidence=behavior_confidence(len(recent_activities), len(patterns)),
            next_best_action=next_best_action(predicted_action),
            recommendations=recommendations_for(predicted_action),
            timestamp=self._clock(),
        )

        log_prediction(self.model_type.value, prediction.confidence, user_id=str(user_id),
                       predicted_action=predicted_action)
        return prediction
