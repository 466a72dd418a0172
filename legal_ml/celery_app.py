# legal_ml/celery_app.py
from celery import Celery, signals

from legal_ml.core.config import get_settings
from legal_ml.core.logging import setup_logging

settings = get_settings()

celery_app = Celery(
    "legal_ml",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["legal_ml.tasks"],
)
celery_app.conf.task_routes = {
    "legal_ml.tasks.*": {"queue": "ml_queue"}
}

if settings.training_schedule_hours > 0:
    celery_app.conf.beat_schedule = {
        "train-models": {
            "task": "legal_ml.tasks.train_models",
            "schedule": settings.training_schedule_hours * 3600.0,
        }
    }


@signals.setup_logging.connect
def configure_worker_logging(**kwargs):
    # replaces Celery's own root logger setup
    setup_logging()
