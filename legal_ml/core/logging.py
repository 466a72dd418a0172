# legal_ml/core/logging.py
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path

import structlog

from legal_ml.core.config import get_settings

_EXTRA_FIELDS = ("user_id", "model_type", "operation", "cache_key", "document_id")


class StructuredFormatter(logging.Formatter):
    """Custom formatter that outputs structured JSON logs"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in _EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging():
    """Setup logging configuration"""
    settings = get_settings()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    if settings.enable_structured_logging:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(settings.log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler (rotating)
    if settings.log_file:
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / settings.log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if settings.enable_structured_logging:
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer()
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.INFO)

    logger = logging.getLogger(__name__)
    logger.info(
        "Logging initialized",
        extra={
            "operation": "setup_logging",
            "log_level": settings.log_level,
            "structured_logging": settings.enable_structured_logging,
        }
    )


def get_logger(name: str):
    """Get a logger instance"""
    if get_settings().enable_structured_logging:
        return structlog.get_logger(name)
    return logging.getLogger(name)


def log_performance(operation: str, duration_ms: float,
                    success: bool = True, **extra):
    """Log performance metrics"""
    logger = logging.getLogger("legal_ml.performance")

    log_data = {
        "operation": operation,
        "duration_ms": round(duration_ms, 2),
        "success": success,
        **extra
    }

    if success:
        logger.info(f"Operation {operation} completed", extra=log_data)
    else:
        logger.warning(f"Operation {operation} failed", extra=log_data)


def log_prediction(model_type: str, confidence: float,
                   user_id: str = None, **extra):
    """Log scoring results for monitoring"""
    logger = logging.getLogger("legal_ml.predictions")

    logger.info(
        "Scoring result produced",
        extra={
            "user_id": user_id,
            "model_type": model_type,
            "confidence": confidence,
            **extra
        }
    )


def log_model_training(model_type: str, duration_ms: float,
                       accuracy: float, samples: int, **extra):
    """Log model training events"""
    logger = logging.getLogger("legal_ml.training")

    logger.info(
        "Model training completed",
        extra={
            "model_type": model_type,
            "duration_ms": round(duration_ms, 2),
            "accuracy": accuracy,
            "samples": samples,
            **extra
        }
    )
