# legal_ml/core/monitoring.py
"""
Prometheus metrics for the scoring engine.

Metrics are registered once per process on the default registry and exported
by whichever exporter the hosting application runs.
"""
import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram

PREDICTION_COUNTER = Counter(
    'ml_predictions_total',
    'Total number of scoring operations completed',
    ['prediction_type']
)

PREDICTION_LATENCY = Histogram(
    'ml_prediction_duration_seconds',
    'Time spent computing scoring results (cache misses only)',
    ['prediction_type']
)

CACHE_LOOKUPS = Counter(
    'ml_cache_lookups_total',
    'Result cache lookups by outcome',
    ['operation', 'outcome']  # outcome: hit, miss, error
)

ERROR_COUNTER = Counter(
    'ml_errors_total',
    'Total number of scoring engine errors',
    ['error_type', 'component']
)

TRAINING_DURATION = Histogram(
    'ml_training_duration_seconds',
    'Time spent on each training sub-run',
    ['model_type']
)


@contextmanager
def track_latency(histogram: Histogram, label: str):
    """Observe the wall-clock duration of the enclosed block"""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(label).observe(time.perf_counter() - start)


def record_error(error: Exception, component: str):
    ERROR_COUNTER.labels(error_type=type(error).__name__, component=component).inc()
