# legal_ml/tasks.py
import asyncio

from legal_ml.celery_app import celery_app
from legal_ml.core.logging import get_logger
from legal_ml.services.engine import ScoringEngine

logger = get_logger(__name__)


async def _run_training():
    engine = ScoringEngine.from_settings()
    try:
        await engine.train_models()
    finally:
        await engine.close()


@celery_app.task(name="legal_ml.tasks.train_models")
def train_models():
    asyncio.run(_run_training())
    logger.info("Scheduled model training finished")
    return {"status": "trained"}
