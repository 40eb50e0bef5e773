"""
Prometheus registry and order lifecycle counters.

Lives apart from the metrics blueprint so services can count outcomes
without importing the HTTP layer.
"""
from prometheus_client import Counter, CollectorRegistry
from prometheus_client import multiprocess, REGISTRY
import logging
import os

logger = logging.getLogger(__name__)

# Check if running in multi-process mode (Gunicorn)
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

# Use multiprocess registry in production with Gunicorn
if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

# Registry to attach new collectors to (multiprocess collectors write to files instead)
collector_registry = registry if not MULTIPROCESS_MODE else None

# Order lifecycle metrics (outcome: ok, validation, conflict, internal)
order_operations_total = Counter(
    'order_operations_total',
    'Order lifecycle operations by outcome',
    ['operation', 'outcome'],
    registry=collector_registry
)


def record_order_operation(operation: str, outcome: str) -> None:
    """Count one order operation; never raises."""
    try:
        order_operations_total.labels(operation=operation, outcome=outcome).inc()
    except Exception as e:
        logger.warning(f"Failed to record order metric: {e}")
