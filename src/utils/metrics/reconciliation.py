"""
Metrics for migration validation runs.

Tracks validated tables by verdict, rows fingerprinted per side, row
anomalies by type and per-table validation time.
"""

import logging
import time
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


class ReconciliationMetrics:
    """
    Prometheus metrics for table validation

    Metrics are registered once per registry; constructing a second instance
    against the same registry reuses the existing collectors.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        from . import get_or_create_metric

        self.registry = registry or REGISTRY

        def metric(factory, name):
            return get_or_create_metric(factory, name, registry=self.registry)

        self.tables_validated_total = metric(
            lambda: Counter(
                "validation_tables_total",
                "Table pairs validated, by verdict",
                ["status"],
                registry=self.registry,
            ),
            "validation_tables",
        )

        self.table_duration_seconds = metric(
            lambda: Histogram(
                "validation_table_duration_seconds",
                "Wall time to validate one table pair",
                ["table_name"],
                buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
                registry=self.registry,
            ),
            "validation_table_duration_seconds",
        )

        self.rows_fingerprinted_total = metric(
            lambda: Counter(
                "validation_rows_fingerprinted_total",
                "Rows extracted and fingerprinted",
                ["table_name", "side"],
                registry=self.registry,
            ),
            "validation_rows_fingerprinted",
        )

        self.row_anomalies_total = metric(
            lambda: Counter(
                "validation_row_anomalies_total",
                "Row anomalies detected",
                ["table_name", "anomaly_type"],
                registry=self.registry,
            ),
            "validation_row_anomalies",
        )

        self.table_errors_total = metric(
            lambda: Counter(
                "validation_table_errors_total",
                "Table pairs whose validation failed with an error",
                ["table_name"],
                registry=self.registry,
            ),
            "validation_table_errors",
        )

        self.match_percentage = metric(
            lambda: Gauge(
                "validation_table_match_percentage",
                "Percentage of source rows matched in the target",
                ["table_name"],
                registry=self.registry,
            ),
            "validation_table_match_percentage",
        )

        self.last_run_timestamp = metric(
            lambda: Gauge(
                "validation_last_run_timestamp",
                "Unix time the last table validation finished",
                registry=self.registry,
            ),
            "validation_last_run_timestamp",
        )

    def record_rows_fingerprinted(self, table_name: str, side: str, rows: int) -> None:
        self.rows_fingerprinted_total.labels(table_name=table_name, side=side).inc(rows)

    def record_table_result(self, result: Any) -> None:
        """
        Record a finished ComparisonResult

        Args:
            result: ComparisonResult for one table pair
        """
        table_name = result.source_table

        self.tables_validated_total.labels(status=result.status).inc()
        self.table_duration_seconds.labels(table_name=table_name).observe(result.duration_seconds)
        self.last_run_timestamp.set(time.time())

        if result.has_error:
            self.table_errors_total.labels(table_name=table_name).inc()
            return

        for anomaly_type, count in (
            ("mismatch", result.mismatched_rows),
            ("missing", result.missing_in_target),
            ("extra", result.extra_in_target),
        ):
            if count:
                self.row_anomalies_total.labels(
                    table_name=table_name, anomaly_type=anomaly_type
                ).inc(count)

        self.match_percentage.labels(table_name=table_name).set(result.match_percentage)

        logger.debug(
            f"Recorded validation metrics: table={table_name}, "
            f"status={result.status}, duration={result.duration_seconds:.2f}s"
        )
