"""
Tests for structured log formatting.
"""
import json
import logging

from legal_ml.core.logging import StructuredFormatter


class TestStructuredFormatter:
    """Test JSON log records."""

    def test_extra_fields_are_included(self):
        record = logging.LogRecord("legal_ml.predictions", logging.INFO, __file__, 10,
                                   "Scoring result produced", None, None)
        record.user_id = "u1"
        record.model_type = "fraud_detection"

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "legal_ml.predictions"
        assert data["message"] == "Scoring result produced"
        assert data["user_id"] == "u1"
        assert data["model_type"] == "fraud_detection"
        assert "document_id" not in data
