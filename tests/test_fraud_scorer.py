"""
Tests for fraud risk scoring.
"""
import json
from datetime import datetime, timedelta

import pytest

from legal_ml.core.exceptions import PredictionException
from legal_ml.models.schemas import BehaviorPattern, FraudActivity, RiskFactor
from legal_ml.services.collectors import BehaviorSignalCollector
from legal_ml.services.engine import ScoringEngine
from legal_ml.services.scoring.fraud_scorer import (
    FraudScorer, anomaly_score, identify_risk_factors, reasons_and_recommendations, risk_score,
)
from tests.conftest import DAYTIME_NOW, FakeCache, FakeGateway


RECENT = BehaviorSignalCollector.RECENT_ACTIVITIES
PATTERNS = BehaviorSignalCollector.BEHAVIOR_PATTERNS
STORE = FraudScorer.STORE_SUSPICIOUS_ACTIVITY


def recent(failed=0, other=0):
    return [{"action": "login_failed"}] * failed + [{"action": "view_cases"}] * other


def pattern_row(action, avg_interval=0.0, failed_logins=0):
    return {"action": action, "frequency": 5, "avg_interval": avg_interval, "failed_logins": failed_logins}


# ============================================================================
# RISK FACTORS AND SCORES
# ============================================================================

class TestRiskFactors:
    """Test risk factor identification."""

    def test_night_with_failed_logins(self):
        factors = identify_risk_factors(2, recent(failed=4))
        assert factors == [RiskFactor.UNUSUAL_LOGIN_TIME, RiskFactor.MULTIPLE_FAILED_LOGINS]

    @pytest.mark.parametrize("hour,unusual", [(5, True), (6, False), (22, False), (23, True)])
    def test_hour_boundaries(self, hour, unusual):
        assert (RiskFactor.UNUSUAL_LOGIN_TIME in identify_risk_factors(hour, [])) is unusual

    def test_volume_boundary(self):
        assert identify_risk_factors(12, recent(other=50)) == []
        assert identify_risk_factors(12, recent(other=51)) == [RiskFactor.HIGH_ACTIVITY_VOLUME]

    def test_three_failed_logins_is_not_multiple(self):
        assert identify_risk_factors(12, recent(failed=3)) == []


class TestScores:
    """Test anomaly and risk score arithmetic."""

    def test_unknown_action_adds_anomaly(self):
        activity = FraudActivity(action="export_all")
        assert anomaly_score(activity, {}, DAYTIME_NOW) == 0.3

    def test_rapid_repeat_adds_anomaly(self):
        patterns = {"view_cases": BehaviorPattern(avg_interval=100.0)}
        activity = FraudActivity(action="view_cases", timestamp=DAYTIME_NOW - timedelta(seconds=10))
        assert anomaly_score(activity, patterns, DAYTIME_NOW) == 0.2

    def test_slow_repeat_has_no_anomaly(self):
        patterns = {"view_cases": BehaviorPattern(avg_interval=100.0)}
        activity = FraudActivity(action="view_cases", timestamp=DAYTIME_NOW - timedelta(seconds=60))
        assert anomaly_score(activity, patterns, DAYTIME_NOW) == 0.0

    def test_type_is_accepted_as_action(self):
        patterns = {"login": BehaviorPattern(frequency=3)}
        assert anomaly_score(FraudActivity(type="login"), patterns, DAYTIME_NOW) == 0.0

    def test_risk_score_is_capped(self):
        factors = [RiskFactor.UNUSUAL_LOGIN_TIME, RiskFactor.HIGH_ACTIVITY_VOLUME,
                   RiskFactor.MULTIPLE_FAILED_LOGINS]
        assert risk_score(0.5, factors) == 1.0
        assert risk_score(0.3, factors[:1]) == 0.4

    def test_reasons_are_independent_checks(self):
        reasons, recommendations = reasons_and_recommendations(0.3, [], failed_logins=6)
        assert reasons == ["High number of failed login attempts"]
        assert recommendations == ["Consider account lockout or 2FA enforcement"]
        assert reasons_and_recommendations(0.8, [], failed_logins=5) == ([], [])


# ============================================================================
# ENGINE INTEGRATION
# ============================================================================

class TestFraudEngine:
    """Test assessments through the engine."""

    @pytest.mark.asyncio
    async def test_exactly_threshold_is_not_suspicious(self, settings, night_clock):
        gateway = FakeGateway(rows={RECENT: recent(failed=4)})
        engine = ScoringEngine(gateway, FakeCache(), settings=settings, clock=night_clock)

        result = await engine.detect_fraud("u1", {"action": "login"})

        assert set(result.risk_factors) == {RiskFactor.UNUSUAL_LOGIN_TIME, RiskFactor.MULTIPLE_FAILED_LOGINS}
        assert result.anomaly_score == 0.3
        assert result.risk_score == 0.7
        assert result.is_suspicious is False
        assert gateway.calls_for(STORE) == []

    @pytest.mark.asyncio
    async def test_suspicious_activity_is_persisted(self, settings, night_clock):
        gateway = FakeGateway(rows={RECENT: recent(failed=4, other=60)})
        engine = ScoringEngine(gateway, FakeCache(), settings=settings, clock=night_clock)

        result = await engine.detect_fraud("u1", {"action": "bulk_export", "ip": "10.0.0.1"})

        assert result.risk_score == 0.9
        assert result.is_suspicious is True
        # suspicious without any reason text
        assert result.reasons == []

        stored = gateway.calls_for(STORE)
        assert len(stored) == 1
        assert stored[0]["user_id"] == "u1"
        assert json.loads(stored[0]["activity"]) == {"action": "bulk_export", "ip": "10.0.0.1"}
        assert json.loads(stored[0]["risk_factors"]) == [
            "unusual_login_time", "high_activity_volume", "multiple_failed_logins",
        ]

    @pytest.mark.asyncio
    async def test_failed_logins_reason_from_patterns(self, settings, day_clock):
        gateway = FakeGateway(rows={
            PATTERNS: [pattern_row("login_failed", failed_logins=6), pattern_row("login")],
        })
        engine = ScoringEngine(gateway, FakeCache(), settings=settings, clock=day_clock)

        result = await engine.detect_fraud("u1", {"type": "login"})

        assert result.is_suspicious is False
        assert result.reasons == ["High number of failed login attempts"]

    @pytest.mark.asyncio
    async def test_naive_clock_with_timestamped_activity(self, settings):
        gateway = FakeGateway(rows={PATTERNS: [pattern_row("login", avg_interval=100.0)]})
        engine = ScoringEngine(gateway, FakeCache(), settings=settings, clock=datetime.now)

        result = await engine.detect_fraud(
            "u1", {"action": "login", "timestamp": datetime.now() - timedelta(seconds=10)},
        )

        assert result.anomaly_score == 0.2

    @pytest.mark.asyncio
    async def test_never_cached(self, settings, day_clock):
        gateway = FakeGateway()
        cache = FakeCache()
        engine = ScoringEngine(gateway, cache, settings=settings, clock=day_clock)

        await engine.detect_fraud("u1", {"action": "login"})
        await engine.detect_fraud("u1", {"action": "login"})

        assert len(gateway.calls_for(RECENT)) == 2
        assert cache.store == {}

    @pytest.mark.asyncio
    async def test_failure_propagates(self, settings):
        gateway = FakeGateway(failures={PATTERNS: RuntimeError("db down")})
        engine = ScoringEngine(gateway, FakeCache(), settings=settings)

        with pytest.raises(PredictionException):
            await engine.detect_fraud("u1", {"action": "login"})
