"""
Tests for settings validation.
"""
import pytest
from pydantic import ValidationError

from legal_ml.core.config import Settings


class TestSettings:
    """Test settings defaults and validators."""

    def test_defaults(self):
        settings = Settings()
        assert settings.suggestions_cache_ttl == 3600
        assert settings.behavior_cache_ttl == 1800
        assert settings.document_cache_ttl == 86400
        assert settings.case_recommendations_cache_ttl == 3600
        assert settings.fraud_risk_threshold == 0.7
        assert settings.cache_key_prefix == "legal_ml:"

    @pytest.mark.parametrize("url", ["postgres://u:p@db/legal", "postgresql://u:p@db/legal"])
    def test_database_url_uses_async_driver(self, url):
        assert Settings(database_url=url).database_url == "postgresql+asyncpg://u:p@db/legal"

    def test_sqlite_detection(self):
        assert Settings(database_url="sqlite+aiosqlite:///./x.db").is_sqlite

    def test_log_level_normalised(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(behavior_cache_ttl=0)

    def test_threshold_range(self):
        with pytest.raises(ValidationError):
            Settings(fraud_risk_threshold=1.5)
