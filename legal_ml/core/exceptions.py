# legal_ml/core/exceptions.py
from typing import Any, Dict, Optional


class MLServiceException(Exception):
    """Base exception for the scoring engine"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ModelTrainingException(MLServiceException):
    """Raised when model training fails"""

    def __init__(self, model_type: str, reason: str):
        super().__init__(
            f"Failed to train {model_type} model: {reason}",
            {
                "model_type": model_type,
                "reason": reason
            }
        )


class PredictionException(MLServiceException):
    """Raised when an authoritative scoring operation fails"""

    def __init__(self, model_type: str, reason: str):
        super().__init__(
            f"Prediction failed for {model_type}: {reason}",
            {
                "model_type": model_type,
                "reason": reason
            }
        )


class PersistenceException(MLServiceException):
    """Raised when the persistence gateway cannot execute a statement"""

    def __init__(self, statement: str, reason: str):
        super().__init__(
            f"Query failed: {reason}",
            {
                "statement": statement.strip().splitlines()[0] if statement.strip() else "",
                "reason": reason
            }
        )


class ConfigurationException(MLServiceException):
    """Raised when there's a configuration error"""

    def __init__(self, config_key: str, reason: str):
        super().__init__(
            f"Configuration error for '{config_key}': {reason}",
            {
                "config_key": config_key,
                "reason": reason
            }
        )
