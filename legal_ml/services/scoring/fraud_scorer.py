# legal_ml/services/scoring/fraud_scorer.py
"""
Fraud and anomaly risk scoring.

riskScore = anomalyScore + risk-factor penalties, capped at 1.0. An activity
is suspicious only when the score is strictly above the threshold. Reason
and recommendation texts come from three independent checks and are not
tied to the suspicious flag.
"""
import json
import logging
from datetime import datetime
from statistics import mean
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import TypeAdapter

from legal_ml.core.logging import log_prediction
from legal_ml.models.schemas import (
    BehaviorPattern, FraudActivity, FraudAssessment, ModelType, RiskFactor,
)
from legal_ml.services.collectors import BehaviorSignalCollector, PersistenceGateway, Row
from legal_ml.services.scoring.base import Clock, ResultPolicy, ScoringModel

logger = logging.getLogger(__name__)

FAILED_LOGIN_ACTION = "login_failed"
HIGH_ACTIVITY_VOLUME = 50
MULTIPLE_FAILED_LOGINS = 3
EXCESSIVE_FAILED_LOGINS = 5
DEFAULT_RISK_THRESHOLD = 0.7


def identify_risk_factors(hour: int, recent_activities: List[Row]) -> List[RiskFactor]:
    factors = []
    if hour < 6 or hour > 22:
        factors.append(RiskFactor.UNUSUAL_LOGIN_TIME)
    if len(recent_activities) > HIGH_ACTIVITY_VOLUME:
        factors.append(RiskFactor.HIGH_ACTIVITY_VOLUME)
    failed = sum(1 for a in recent_activities if a.get("action") == FAILED_LOGIN_ACTION)
    if failed > MULTIPLE_FAILED_LOGINS:
        factors.append(RiskFactor.MULTIPLE_FAILED_LOGINS)
    return factors


def average_interval(patterns: Mapping[str, BehaviorPattern]) -> Optional[float]:
    """Mean of the positive per-action intervals, None when there are none"""
    intervals = [p.avg_interval for p in patterns.values() if p.avg_interval > 0]
    return mean(intervals) if intervals else None


def anomaly_score(activity: FraudActivity, patterns: Mapping[str, BehaviorPattern],
                  now: datetime) -> float:
    score = 0.0
    if activity.action_name not in patterns:
        score += 0.3

    interval = average_interval(patterns)
    if activity.timestamp is not None and interval is not None:
        timestamp = activity.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.astimezone()
        if now.tzinfo is None:
            now = now.astimezone()
        elapsed = (now - timestamp).total_seconds()
        if elapsed < interval * 0.5:
            score += 0.2

    return round(min(1.0, score), 4)


def risk_factor_weight(factor: RiskFactor) -> float:
    match factor:
        case RiskFactor.UNUSUAL_LOGIN_TIME:
            return 0.1
        case RiskFactor.HIGH_ACTIVITY_VOLUME:
            return 0.2
        case RiskFactor.MULTIPLE_FAILED_LOGINS:
            return 0.3
        case _:
            return 0.0


def risk_score(anomaly: float, factors: List[RiskFactor]) -> float:
    score = anomaly + sum(risk_factor_weight(f) for f in factors)
    return round(min(1.0, score), 4)


def total_failed_logins(patterns: Mapping[str, BehaviorPattern]) -> int:
    return sum(p.failed_logins for p in patterns.values())


def reasons_and_recommendations(anomaly: float, factors: List[RiskFactor],
                                failed_logins: int) -> tuple:
    reasons, recommendations = [], []
    if anomaly > 0.8:
        reasons.append("Unusual activity pattern detected")
        recommendations.append("Review recent user activities")
    if len(factors) > 3:
        reasons.append("Multiple risk factors identified")
        recommendations.append("Implement additional security measures")
    if failed_logins > EXCESSIVE_FAILED_LOGINS:
        reasons.append("High number of failed login attempts")
        recommendations.append("Consider account lockout or 2FA enforcement")
    return reasons, recommendations


class FraudScorer(ScoringModel):
    model_type = ModelType.FRAUD_DETECTION
    policy = ResultPolicy.STRICT
    result_adapter = TypeAdapter(FraudAssessment)

    STORE_SUSPICIOUS_ACTIVITY = """
        INSERT INTO ml_suspicious_activities
            (user_id, activity, risk_score, risk_factors, reasons, recommendations, detected_at)
        VALUES (:user_id, :activity, :risk_score, :risk_factors, :reasons, :recommendations, :detected_at)
    """

    def __init__(self, collector: BehaviorSignalCollector, gateway: PersistenceGateway,
                 threshold: float = DEFAULT_RISK_THRESHOLD, clock: Optional[Clock] = None):
        # never cached
        super().__init__(cache_ttl=None, clock=clock)
        self.collector = collector
        self.gateway = gateway
        self.threshold = threshold

    async def score(self, user_id: str,
                    activity: Union[Mapping[str, Any], FraudActivity]) -> FraudAssessment:
        if not isinstance(activity, FraudActivity):
            activity = FraudActivity.model_validate(dict(activity or {}))

        now = self._clock()
        recent_activities = await self.collector.recent_activities(user_id)
        patterns: Dict[str, BehaviorPattern] = await self.collector.behavior_patterns(user_id)

        factors = identify_risk_factors(now.hour, recent_activities)
        anomaly = anomaly_score(activity, patterns, now)
        score = risk_score(anomaly, factors)
        reasons, recommendations = reasons_and_recommendations(
            anomaly, factors, total_failed_logins(patterns)
        )

        assessment = FraudAssessment(
            is_suspicious=score > self.threshold,
            risk_score=score,
            reasons=reasons,
            recommendations=recommendations,
            risk_factors=factors,
            anomaly_score=anomaly,
        )

        if assessment.is_suspicious:
            await self._store(str(user_id), activity, assessment, now)
            logger.warning(f"Suspicious activity for user {user_id}: risk score {score}")

        log_prediction(self.model_type.value, score, user_id=str(user_id),
                       is_suspicious=assessment.is_suspicious)
        return assessment

    async def _store(self, user_id: str, activity: FraudActivity,
                     assessment: FraudAssessment, detected_at: datetime):
        await self.gateway.query(self.STORE_SUSPICIOUS_ACTIVITY, {
            "user_id": user_id,
            "activity": json.dumps(activity.model_dump(mode="json", exclude_none=True)),
            "risk_score": assessment.risk_score,
            "risk_factors": json.dumps([f.value for f in assessment.risk_factors]),
            "reasons": json.dumps(assessment.reasons),
            "recommendations": json.dumps(assessment.recommendations),
            "detected_at": detected_at,
        })
