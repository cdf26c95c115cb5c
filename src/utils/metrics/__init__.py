"""
Prometheus metrics for migration validation

Usage:
    from utils.metrics import initialize_metrics

    metrics = initialize_metrics(port=9108)
    metrics["reconciliation"].record_rows_fingerprinted("HR.EMPLOYEES", "source", 5000)
"""

import logging
from typing import Any, Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

from .publisher import MetricsPublisher
from .reconciliation import ReconciliationMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric, or return the one already registered under ``metric_name``.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Name the registry knows the metric by
        registry: Prometheus registry to look in

    Returns:
        The new or existing metric
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


def initialize_metrics(
    port: int = 9108,
    registry: CollectorRegistry | None = None,
) -> dict[str, Any]:
    """
    Create the validation metrics and start the HTTP exposition server

    Returns:
        Dictionary with ``publisher`` and ``reconciliation`` entries
    """
    logger.info(f"Initializing metrics on port {port}")

    publisher = MetricsPublisher(port=port, registry=registry)
    publisher.start()

    return {
        "publisher": publisher,
        "reconciliation": ReconciliationMetrics(registry=registry),
    }


__all__ = [
    "MetricsPublisher",
    "ReconciliationMetrics",
    "initialize_metrics",
    "get_or_create_metric",
]
